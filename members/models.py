"""
Domain models for member management.

Design decisions:
- Using Pydantic for validation and serialization
- Member records are immutable snapshots; a change produces a new value
  via ``model_copy(update=...)`` which the store then persists
- Patches are a separate model so "not supplied" is distinguishable from
  "supplied as empty string"
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class MemberStatus(str, Enum):
    """Member lifecycle states."""
    MEMBER_ACTIVE = "MEMBER_ACTIVE"   # Normal, usable account
    MEMBER_SLEEP = "MEMBER_SLEEP"     # Dormant after long inactivity
    MEMBER_QUIT = "MEMBER_QUIT"       # Member has withdrawn

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    MemberStatus.MEMBER_ACTIVE: "active",
    MemberStatus.MEMBER_SLEEP: "dormant",
    MemberStatus.MEMBER_QUIT: "withdrawn",
}


# =============================================================================
# Core Domain Models
# =============================================================================

class Member(BaseModel):
    """
    Member account record.

    ``member_id`` is None for a candidate that has not been saved yet; the
    store assigns it on insert. Email is unique across all members and is
    never changed after creation.
    """
    member_id: Optional[int] = Field(default=None, description="Assigned by the store")
    email: str = Field(..., description="Unique login / contact address")
    name: str = Field(..., description="Display name")
    phone: str = Field(..., description="Contact phone number")
    member_status: MemberStatus = Field(
        default=MemberStatus.MEMBER_ACTIVE,
        description="Lifecycle state",
    )
    created_at: Optional[datetime] = Field(default=None)
    modified_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(use_enum_values=True, frozen=True)


class MemberPatch(BaseModel):
    """
    Partial update for a member.

    A field counts as present only when it was explicitly supplied and is
    not None. Absent fields leave the stored value untouched.
    """
    member_id: int = Field(..., description="Member to update")
    name: Optional[str] = Field(default=None)
    phone: Optional[str] = Field(default=None)
    member_status: Optional[MemberStatus] = Field(default=None)

    model_config = ConfigDict(use_enum_values=True)

    def present_fields(self) -> dict[str, Any]:
        """Return the updatable fields that were supplied, keyed by name."""
        return {
            name: getattr(self, name)
            for name in ("name", "phone", "member_status")
            if name in self.model_fields_set and getattr(self, name) is not None
        }

    def apply_to(self, member: Member) -> Member:
        """Return a copy of ``member`` with the present fields overwritten."""
        changes = self.present_fields()
        if not changes:
            return member
        return member.model_copy(update=changes)


class Page(BaseModel):
    """One page of members in store order."""
    content: list[Member] = Field(default_factory=list)
    page: int = Field(..., ge=0, description="Zero-based page index")
    size: int = Field(..., ge=1)
    total_elements: int = Field(..., ge=0)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size)

    def is_empty(self) -> bool:
        return not self.content

    def member_ids(self) -> list[int]:
        return [m.member_id for m in self.content]
