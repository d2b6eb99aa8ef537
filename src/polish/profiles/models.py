"""Profile data models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from polish.config.models import PolishConfig


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    """A named configuration stored on disk.

    Attributes:
        name: Unique profile name.
        description: Optional human-readable description.
        config: Configuration held by the profile.
        created_at: When the profile was created.
        last_used: When the profile was last activated or updated.
    """

    name: str
    description: Optional[str] = None
    config: PolishConfig = Field(default_factory=PolishConfig)
    created_at: datetime = Field(default_factory=_utcnow)
    last_used: datetime = Field(default_factory=_utcnow)


class ProfileSummary(BaseModel):
    """Listing entry describing a profile."""

    name: str
    description: Optional[str] = None
    vault_path: str
    originals_path: str
    source_count: int
    is_active: bool = False
    created_at: datetime
    last_used: datetime


__all__ = ["Profile", "ProfileSummary"]
