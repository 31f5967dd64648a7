from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from creatorcore.auth.clerk import verify_clerk_token
from creatorcore.config import settings
from creatorcore.db.deps import get_session
from creatorcore.db.enums import UserRoleEnum
from creatorcore.db.repositories.orgs import OrgsRepository

bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("auth.deps")


@dataclass
class AuthContext:
    user_id: str
    org_id: str
    role: str = UserRoleEnum.viewer.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleEnum.admin.value


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> AuthContext:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    identity = verify_clerk_token(credentials.credentials)
    orgs_repo = OrgsRepository(session)
    org = orgs_repo.get_by_external_id(identity.external_org_id)
    if not org:
        logger.info(
            "Creating org from Clerk external_id",
            extra={"external_org_id": identity.external_org_id, "sub": identity.user_id},
        )
        org = orgs_repo.create(name=f"Clerk org {identity.external_org_id}", external_id=identity.external_org_id)

    logger.debug("AuthContext built", extra={"sub": identity.user_id, "org_id": str(org.id), "role": identity.role})
    return AuthContext(user_id=identity.user_id, org_id=str(org.id), role=identity.role)


def _cron_secret_matches(credentials: Optional[HTTPAuthorizationCredentials]) -> bool:
    expected = settings.CRON_SECRET
    if not expected or credentials is None or not credentials.credentials:
        return False
    return hmac.compare_digest(credentials.credentials.encode(), expected.encode())


def require_cron_secret(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> None:
    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET is not configured; system endpoints are disabled")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Cron secret not configured")
    if not _cron_secret_matches(credentials):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret")


def require_admin_or_cron(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[AuthContext]:
    """Cron callers get None (system scope); otherwise the user must be an org admin."""
    if _cron_secret_matches(credentials):
        return None
    auth = get_current_user(credentials=credentials, session=session)
    if not auth.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return auth
