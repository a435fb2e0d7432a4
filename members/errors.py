"""
Error taxonomy for member management.

Every failure the core can surface is one of the ``ExceptionCode`` members.
Each code carries a stable HTTP-style status and message so the request
layer can translate it without knowing about individual exception classes.
"""

from enum import Enum
from typing import Optional


class ExceptionCode(Enum):
    """Closed set of business error kinds."""
    MEMBER_NOT_FOUND = (404, "Member not found")
    MEMBER_EXISTS = (409, "Member exists")
    CONCURRENT_UPDATE_CONFLICT = (409, "Member was modified concurrently")
    STORE_FAILURE = (500, "Member store failure")

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message


class BusinessLogicException(Exception):
    """Base class for every error raised by the member core."""

    exception_code: ExceptionCode = ExceptionCode.STORE_FAILURE

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        text = self.exception_code.message
        if detail:
            text = f"{text}: {detail}"
        super().__init__(text)

    @property
    def status(self) -> int:
        return self.exception_code.status

    def to_dict(self) -> dict:
        """Error body used by the request layer."""
        return {
            "status": self.exception_code.status,
            "code": self.exception_code.name,
            "message": str(self),
        }


class MemberNotFound(BusinessLogicException):
    """No member matches the requested id."""
    exception_code = ExceptionCode.MEMBER_NOT_FOUND


class MemberExists(BusinessLogicException):
    """The email is already registered to another member."""
    exception_code = ExceptionCode.MEMBER_EXISTS


class ConcurrentUpdateConflict(BusinessLogicException):
    """A serializable transaction lost a race; the caller may retry."""
    exception_code = ExceptionCode.CONCURRENT_UPDATE_CONFLICT


class StoreFailure(BusinessLogicException):
    """Connectivity or constraint failure inside the store."""
    exception_code = ExceptionCode.STORE_FAILURE
