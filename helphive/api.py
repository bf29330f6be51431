import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from fastapi import APIRouter, FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from starlette.middleware.cors import CORSMiddleware

from helphive.config import Settings, get_settings
from helphive.database import (
    Database,
    IdentityStore,
    InMemoryKeyValueDatabase,
    RequestStore,
)
from helphive.errors import (
    HelpHiveError,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from helphive.feed import build_feed, enrich, order_by_urgency
from helphive.lifecycle import RequestLifecycle
from helphive.logging import configure_logging
from helphive.models import (
    Caller,
    EnrichedHelpRequest,
    HelpCategory,
    HelpRequest,
    RequestStatus,
    Urgency,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# older clients send camel-case (or pre-rename) field names
LEGACY_FIELD_NAMES = {
    "help_type": "category",
    "helpType": "category",
    "urgency_level": "urgency",
    "urgencyLevel": "urgency",
    "locationName": "location_name",
    "expiresInHours": "expires_in_hours",
    "lat": "latitude",
    "lng": "longitude",
}


def normalize_legacy_fields(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    normalized = {}
    for key, value in data.items():
        canonical = LEGACY_FIELD_NAMES.get(key, key)
        # canonical names win over legacy ones
        if canonical != key and canonical in data:
            continue
        normalized[canonical] = value
    return normalized


class CreateHelpRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    category: HelpCategory
    urgency: Urgency
    location_name: str = Field(min_length=1)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    # range checked against the configured expiry bounds in the core
    expires_in_hours: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _translate_legacy_names(cls, data: Any) -> Any:
        return normalize_legacy_fields(data)

    @field_validator("category", "urgency", mode="before")
    @classmethod
    def _lower_case(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def _translate_legacy_names(cls, data: Any) -> Any:
        return normalize_legacy_fields(data)


class FeedOrder(StrEnum):
    DISTANCE = "distance"
    URGENCY = "urgency"


def _lifecycle(request: Request) -> RequestLifecycle:
    db: Database = request.app.state.database
    settings: Settings = request.app.state.settings
    return RequestLifecycle(
        RequestStore(db),
        IdentityStore(db),
        now_fn=request.app.state.now_fn,
        expiry=settings.expiry,
    )


def _caller(request: Request, user_id: str | None) -> Caller:
    if not user_id:
        raise Unauthenticated("Access token required")
    account = IdentityStore(request.app.state.database).get(user_id)
    if account is None:
        raise Unauthenticated("Unknown account")
    return Caller.from_account(account)


@router.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    return {
        "status": "ok",
        "timestamp": request.app.state.now_fn().isoformat(),
    }


@router.get("/api/requests")
async def list_help_requests(
    request: Request,
    status: RequestStatus | None = None,
    order: FeedOrder = FeedOrder.DISTANCE,
    x_user_id: str | None = Header(default=None),
) -> list[EnrichedHelpRequest]:
    viewer = _caller(request, x_user_id)
    feed = build_feed(
        _lifecycle(request),
        viewer,
        status=status,
        unknown_user_name=request.app.state.settings.feed.unknown_user_name,
    )
    if order == FeedOrder.URGENCY:
        feed = order_by_urgency(feed)
    return feed


@router.get("/api/requests/{request_id}")
async def get_help_request(
    request_id: str,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> EnrichedHelpRequest:
    viewer = _caller(request, x_user_id)
    lifecycle = _lifecycle(request)
    lifecycle.sweep_expired()
    return enrich(
        lifecycle.get_request(request_id),
        lifecycle.accounts,
        viewer_coordinates=viewer.coordinates,
        unknown_user_name=request.app.state.settings.feed.unknown_user_name,
    )


@router.post("/api/requests", status_code=201)
async def create_help_request(
    body: CreateHelpRequest,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> HelpRequest:
    caller = _caller(request, x_user_id)
    return _lifecycle(request).create_request(
        requester_id=caller.id,
        title=body.title,
        description=body.description,
        category=body.category,
        urgency=body.urgency,
        location_name=body.location_name,
        latitude=body.latitude,
        longitude=body.longitude,
        expires_in_hours=body.expires_in_hours,
    )


@router.put("/api/requests/{request_id}/accept")
async def accept_help_request(
    request_id: str,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> HelpRequest:
    caller = _caller(request, x_user_id)
    return _lifecycle(request).accept_request(request_id, caller)


@router.put("/api/requests/{request_id}/complete")
async def complete_help_request(
    request_id: str,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> HelpRequest:
    caller = _caller(request, x_user_id)
    return _lifecycle(request).complete_request(request_id, caller)


@router.delete("/api/requests/{request_id}")
async def delete_help_request(
    request_id: str,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> dict[str, str]:
    caller = _caller(request, x_user_id)
    _lifecycle(request).delete_request(request_id, caller)
    return {"message": "Request deleted successfully"}


@router.get("/api/users/my-requests")
async def my_requests(
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> list[HelpRequest]:
    caller = _caller(request, x_user_id)
    return _lifecycle(request).list_requests(requester_id=caller.id)


@router.get("/api/users/my-responses")
async def my_responses(
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> list[HelpRequest]:
    caller = _caller(request, x_user_id)
    return _lifecycle(request).list_requests(volunteer_id=caller.id)


@router.put("/api/users/location")
async def update_location(
    body: LocationUpdate,
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> dict[str, str]:
    caller = _caller(request, x_user_id)
    updated = IdentityStore(request.app.state.database).update_location(
        caller.id, body.latitude, body.longitude
    )
    if updated is None:
        raise NotFound(f"Account {caller.id} not found")
    return {"message": "Location updated successfully"}


async def _handle_helphive_error(
    request: Request, exc: HelpHiveError
) -> JSONResponse:
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.error_type,
        exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.error_type},
    )


async def _handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.warning(
        "%s %s -> 422 %s", request.method, request.url.path, exc.errors()
    )
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={
            "detail": jsonable_encoder(exc.errors()),
            "error": ValidationError.error_type,
        },
    )


async def _handle_unexpected_error(
    request: Request, exc: Exception
) -> JSONResponse:
    logger.exception(
        "unhandled error on %s %s", request.method, request.url.path
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": "internal_error"},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=f"{settings.app.name} API")
    db: Database = InMemoryKeyValueDatabase()
    app.state.database = db
    app.state.settings = settings

    app.state.now_fn = lambda: datetime.now(UTC)

    if settings.app.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.app.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    app.add_exception_handler(HelpHiveError, _handle_helphive_error)
    app.add_exception_handler(
        RequestValidationError, _handle_request_validation_error
    )
    app.add_exception_handler(Exception, _handle_unexpected_error)

    app.include_router(router)
    return app
