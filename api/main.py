"""
FastAPI application exposing member management over HTTP.

This is the request-handling layer in front of the member service:
- Validates input and maps DTOs to domain models
- Translates business errors into HTTP responses (404 / 409 / 500)
- Converts the one-based ``page`` query parameter to the service's
  zero-based pages

Run with:
    uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from api.schemas import (
    ErrorResponse,
    MemberPatchDto,
    MemberPostDto,
    MemberResponseDto,
    MultiResponseDto,
)
from members.config import Settings, configure_logging
from members.errors import BusinessLogicException
from members.service import MemberService
from members.store import MemberStore
from notifications.channels import EmailChannel
from notifications.email_listener import MemberEmailListener
from notifications.event_bus import EventBus

logger = logging.getLogger("member_api")

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# Dependencies
# =============================================================================

def get_member_service(request: Request) -> MemberService:
    return request.app.state.member_service


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# =============================================================================
# Member Endpoints
# =============================================================================

router = APIRouter(prefix="/v1/members", tags=["Members"], responses=ERROR_RESPONSES)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=MemberResponseDto)
def post_member(
    body: MemberPostDto,
    service: MemberService = Depends(get_member_service),
):
    """Register a new member. A welcome email is sent in the background."""
    member = service.create_member(body.to_member())
    return MemberResponseDto.from_member(member)


@router.patch("/{member_id}", response_model=MemberResponseDto)
def patch_member(
    member_id: int,
    body: MemberPatchDto,
    service: MemberService = Depends(get_member_service),
):
    """Update the supplied fields of a member; omitted fields keep their value."""
    member = service.update_member(body.to_patch(member_id))
    return MemberResponseDto.from_member(member)


@router.get("/{member_id}", response_model=MemberResponseDto)
def get_member(
    member_id: int,
    service: MemberService = Depends(get_member_service),
):
    return MemberResponseDto.from_member(service.find_member(member_id))


@router.get("", response_model=MultiResponseDto)
def get_members(
    page: int = Query(default=1, ge=1),
    size: Optional[int] = Query(default=None, ge=1),
    service: MemberService = Depends(get_member_service),
    settings: Settings = Depends(get_settings),
):
    """List members, newest first."""
    result = service.find_members(page - 1, size or settings.default_page_size)
    return MultiResponseDto.from_page(result)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_member(
    member_id: int,
    service: MemberService = Depends(get_member_service),
):
    service.delete_member(member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Application Factory
# =============================================================================

def build_service(settings: Settings) -> tuple[MemberService, MemberEmailListener]:
    """Wire store, bus, email channel and listener from settings."""
    event_bus = EventBus(
        asynchronous=settings.notify_async,
        max_workers=settings.notify_workers,
    )
    email_channel = EmailChannel(
        fail_rate=settings.mail_fail_rate,
        delay_seconds=settings.mail_delay_seconds,
        sender=settings.mail_sender,
    )
    listener = MemberEmailListener(event_bus, email_channel)
    return MemberService(MemberStore(), event_bus), listener


def create_app(
    service: Optional[MemberService] = None,
    listener: Optional[MemberEmailListener] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    With no service the full stack is wired from settings at startup, so
    importing this module builds nothing. Tests pass their own service
    (and optionally listener) instead.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown."""
        settings = app.state.settings or Settings.from_env()
        configure_logging(settings)
        logger.info("Starting Member Management API")
        if app.state.member_service is None:
            app.state.member_service, app.state.email_listener = build_service(settings)
        app.state.settings = settings
        service = app.state.member_service
        listener = app.state.email_listener
        if listener is not None:
            listener.start()
        yield
        if listener is not None:
            listener.stop()
        service.event_bus.shutdown()
        logger.info("Shutting down")

    app = FastAPI(
        title="Member Management",
        description="Create, update, look up and delete member accounts.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.member_service = service
    app.state.email_listener = listener
    app.state.settings = settings

    @app.exception_handler(BusinessLogicException)
    async def handle_business_error(request: Request, exc: BusinessLogicException):
        if exc.status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "healthy", "service": "member-management"}

    app.include_router(router)
    return app


app = create_app()
