from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from creatorcore.db.enums import SwipeActionEnum


class SwipeCreate(BaseModel):
    run_id: str = Field(..., min_length=1, max_length=64)
    creator_id: str = Field(..., min_length=1, max_length=255)
    action: SwipeActionEnum
    note: Optional[str] = Field(default=None, max_length=2000)
