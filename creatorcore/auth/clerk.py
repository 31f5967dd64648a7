from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi import HTTPException, status
from jose import jwt
from jose.exceptions import JWSError, JWTError

from creatorcore.config import settings
from creatorcore.db.enums import UserRoleEnum
from creatorcore.services.cache import InMemoryTTLCache

logger = logging.getLogger("auth.clerk")

JWKS_CACHE_KEY = "clerk:jwks"
JWKS_TTL_SECONDS = 300

_ROLE_ALIASES = {
    "org:admin": UserRoleEnum.admin,
    "admin": UserRoleEnum.admin,
    "org:analyst": UserRoleEnum.analyst,
    "analyst": UserRoleEnum.analyst,
    "org:member": UserRoleEnum.viewer,
    "org:viewer": UserRoleEnum.viewer,
    "viewer": UserRoleEnum.viewer,
}

_jwks_cache = InMemoryTTLCache(ttl_seconds=JWKS_TTL_SECONDS, max_stale_seconds=0)


@dataclass(frozen=True)
class ClerkIdentity:
    user_id: str
    external_org_id: str
    role: str


def normalize_role(raw: Optional[str]) -> str:
    """Map Clerk org roles onto admin/analyst/viewer; anything unknown is a viewer."""
    return _ROLE_ALIASES.get((raw or "").strip().lower(), UserRoleEnum.viewer).value


def _download_jwks() -> Dict[str, Any]:
    try:
        resp = httpx.get(settings.CLERK_JWKS_URL, timeout=10)
        resp.raise_for_status()
        return resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.exception("JWKS fetch failed", extra={"jwks_url": settings.CLERK_JWKS_URL})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to fetch Clerk JWKS",
        ) from exc


def _jwks(force_refresh: bool = False) -> Dict[str, Any]:
    if not force_refresh:
        record = _jwks_cache.get(JWKS_CACHE_KEY)
        if record is not None:
            return record.payload
    jwks = _download_jwks()
    _jwks_cache.set(JWKS_CACHE_KEY, jwks)
    return jwks


def _find_key(jwks: Dict[str, Any], kid: str) -> Optional[Dict[str, Any]]:
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def _signing_key(token: str) -> Dict[str, Any]:
    try:
        headers = jwt.get_unverified_header(token)
    except JWTError as exc:
        logger.warning("Invalid token header", exc_info=exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    kid = headers.get("kid")
    if not kid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing kid in token")

    # Keys may have rotated since the last fetch; refetch once on a miss.
    key = _find_key(_jwks(), kid) or _find_key(_jwks(force_refresh=True), kid)
    if key is None:
        logger.warning("Signing key not found", extra={"kid": kid})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Signing key not found")
    return key


def identity_from_claims(claims: Dict[str, Any]) -> ClerkIdentity:
    """
    Reduce verified Clerk claims to the caller's user, org and role.

    Session tokens carry the active org as ``org_id``/``org_role``; older
    templates only list memberships under ``orgs``, in which case the first
    membership is used.
    """
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token claims")
    first_org = (claims.get("orgs") or [{}])[0] or {}
    external_org_id = claims.get("org_id") or claims.get("organization_id") or first_org.get("id")
    if not external_org_id:
        logger.warning(
            "Missing organization in token",
            extra={"sub": user_id, "claims_keys": list(claims.keys())},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing organization context in token",
        )
    return ClerkIdentity(
        user_id=user_id,
        external_org_id=external_org_id,
        role=normalize_role(claims.get("org_role") or first_org.get("role")),
    )


def verify_clerk_token(token: str) -> ClerkIdentity:
    key = _signing_key(token)
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", "RS256")],
            audience=settings.CLERK_AUDIENCE,
            issuer=settings.CLERK_JWT_ISSUER,
        )
    except (JWTError, JWSError) as exc:
        logger.warning("Token verification failed", exc_info=exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    return identity_from_claims(claims)
