"""
Member management core.

This package contains the pieces that own member data:
- Domain models (Member, MemberPatch, Page)
- The error taxonomy
- The transactional in-memory store
- The member service that enforces uniqueness and existence rules
"""

from members.errors import (
    BusinessLogicException,
    ConcurrentUpdateConflict,
    ExceptionCode,
    MemberExists,
    MemberNotFound,
    StoreFailure,
)
from members.models import Member, MemberPatch, MemberStatus, Page
from members.store import Isolation, MemberStore, Transaction
from members.service import MemberService

__all__ = [
    "BusinessLogicException",
    "ConcurrentUpdateConflict",
    "ExceptionCode",
    "MemberExists",
    "MemberNotFound",
    "StoreFailure",
    "Member",
    "MemberPatch",
    "MemberStatus",
    "Page",
    "Isolation",
    "MemberStore",
    "Transaction",
    "MemberService",
]
