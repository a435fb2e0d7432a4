"""
Request and response models for the member API.

These Pydantic models define the HTTP contract. They validate external
input and map to and from the core's domain models; the core itself never
sees these types.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from members.models import Member, MemberPatch, MemberStatus, Page

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+?[0-9][0-9\- ]{2,19}$"


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class MemberPostDto(BaseModel):
    """Body of ``POST /v1/members``."""
    email: str = Field(..., pattern=EMAIL_PATTERN)
    name: NonBlankStr = Field(..., max_length=100)
    phone: str = Field(..., pattern=PHONE_PATTERN)

    def to_member(self) -> Member:
        return Member(email=self.email, name=self.name, phone=self.phone)


class MemberPatchDto(BaseModel):
    """
    Body of ``PATCH /v1/members/{member_id}``.

    Only the fields present in the JSON body are applied.
    """
    name: Optional[NonBlankStr] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    member_status: Optional[MemberStatus] = Field(default=None)

    def to_patch(self, member_id: int) -> MemberPatch:
        return MemberPatch(member_id=member_id, **self.model_dump(exclude_unset=True))


class MemberResponseDto(BaseModel):
    """A member as returned to clients."""
    member_id: int
    email: str
    name: str
    phone: str
    member_status: MemberStatus
    status_label: str
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

    @classmethod
    def from_member(cls, member: Member) -> "MemberResponseDto":
        status = MemberStatus(member.member_status)
        return cls(
            member_id=member.member_id,
            email=member.email,
            name=member.name,
            phone=member.phone,
            member_status=status,
            status_label=status.label,
            created_at=member.created_at,
            modified_at=member.modified_at,
        )


class PageInfo(BaseModel):
    """Paging metadata; ``page`` is one based, as in the request."""
    page: int
    size: int
    total_elements: int
    total_pages: int


class MultiResponseDto(BaseModel):
    """Body of ``GET /v1/members``."""
    data: list[MemberResponseDto]
    page_info: PageInfo

    @classmethod
    def from_page(cls, page: Page) -> "MultiResponseDto":
        return cls(
            data=[MemberResponseDto.from_member(m) for m in page.content],
            page_info=PageInfo(
                page=page.page + 1,
                size=page.size,
                total_elements=page.total_elements,
                total_pages=page.total_pages,
            ),
        )


class ErrorResponse(BaseModel):
    """Body returned for every business error."""
    status: int
    code: str
    message: str
