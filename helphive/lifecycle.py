"""
Help request state machine.

    open --accept--> accepted --complete--> completed
      \\
       --sweep--> expired

Completed and expired are terminal. Deletion removes the row outright and is
not a state. Every check that guards a transition runs inside the store's
atomic update, against the stored row.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from helphive.config import ExpirySettings
from helphive.database import IdentityStore, RequestStore
from helphive.errors import Forbidden, InvalidState, NotFound, ValidationError
from helphive.models import (
    Caller,
    HelpCategory,
    HelpRequest,
    RequestStatus,
    Role,
    Urgency,
)

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class RequestLifecycle:
    def __init__(
        self,
        requests: RequestStore,
        accounts: IdentityStore,
        *,
        now_fn: NowFn = utc_now,
        expiry: ExpirySettings | None = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.requests = requests
        self.accounts = accounts
        self.now_fn = now_fn
        self.expiry = expiry or ExpirySettings()
        self.id_factory = id_factory

    def create_request(
        self,
        requester_id: str,
        title: str,
        description: str,
        category: HelpCategory,
        urgency: Urgency,
        location_name: str,
        latitude: float,
        longitude: float,
        expires_in_hours: int | None = None,
    ) -> HelpRequest:
        hours = (
            self.expiry.default_hours
            if expires_in_hours is None
            else expires_in_hours
        )
        if not self.expiry.min_hours <= hours <= self.expiry.max_hours:
            raise ValidationError(
                f"expires_in_hours must be between {self.expiry.min_hours} "
                f"and {self.expiry.max_hours}"
            )

        now = self.now_fn()
        request = HelpRequest(
            id=self.id_factory(),
            requester_id=requester_id,
            title=title,
            description=description,
            category=category,
            urgency=urgency,
            location_name=location_name,
            latitude=latitude,
            longitude=longitude,
            status=RequestStatus.OPEN,
            volunteer_id=None,
            created_at=now,
            expires_at=now + timedelta(hours=hours),
        )
        created = self.requests.insert(request)
        logger.info(
            "request %s created by %s (%s, %s)",
            created.id,
            requester_id,
            created.category.value,
            created.urgency.value,
        )
        return created

    def get_request(self, request_id: str) -> HelpRequest:
        request = self.requests.get(request_id)
        if request is None:
            raise NotFound(f"Request {request_id} not found")
        return request

    def sweep_expired(self) -> int:
        return self.requests.expire_overdue(self.now_fn())

    def list_requests(
        self,
        *,
        status: RequestStatus | None = None,
        requester_id: str | None = None,
        volunteer_id: str | None = None,
    ) -> list[HelpRequest]:
        self.sweep_expired()
        return self.requests.filter(
            status=status, requester_id=requester_id, volunteer_id=volunteer_id
        )

    def accept_request(self, request_id: str, caller: Caller) -> HelpRequest:
        now = self.now_fn()

        def _accept(request: HelpRequest) -> HelpRequest:
            if request.status != RequestStatus.OPEN:
                raise InvalidState(
                    f"Request {request_id} is {request.status.value}, not open"
                )
            if request.is_overdue(now):
                raise InvalidState(f"Request {request_id} has expired")
            if caller.role != Role.VOLUNTEER:
                raise Forbidden("Only volunteers can accept requests")
            return request.model_copy(
                update={
                    "status": RequestStatus.ACCEPTED,
                    "volunteer_id": caller.id,
                }
            )

        accepted = self._transition(request_id, _accept)
        logger.info("request %s accepted by %s", request_id, caller.id)
        return accepted

    def complete_request(self, request_id: str, caller: Caller) -> HelpRequest:
        def _complete(request: HelpRequest) -> HelpRequest:
            if caller.id not in (request.requester_id, request.volunteer_id):
                raise Forbidden("Not authorized to complete this request")
            match request.status:
                case RequestStatus.ACCEPTED:
                    return request.model_copy(
                        update={
                            "status": RequestStatus.COMPLETED,
                            "completed_at": self.now_fn(),
                        }
                    )
                case (
                    RequestStatus.OPEN
                    | RequestStatus.COMPLETED
                    | RequestStatus.EXPIRED
                ):
                    raise InvalidState(
                        f"Request {request_id} is {request.status.value}; "
                        "only accepted requests can be completed"
                    )

        completed = self._transition(request_id, _complete)
        logger.info("request %s completed by %s", request_id, caller.id)
        return completed

    def delete_request(self, request_id: str, caller: Caller) -> None:
        def _check(request: HelpRequest) -> None:
            if request.requester_id != caller.id:
                raise Forbidden("Not authorized to delete this request")
            match request.status:
                case RequestStatus.COMPLETED:
                    raise InvalidState(
                        f"Request {request_id} is completed "
                        "and cannot be deleted"
                    )
                case (
                    RequestStatus.OPEN
                    | RequestStatus.ACCEPTED
                    | RequestStatus.EXPIRED
                ):
                    return

        try:
            deleted = self.requests.delete(request_id, _check)
        except (Forbidden, InvalidState) as e:
            logger.warning("delete of %s rejected: %s", request_id, e.detail)
            raise
        if not deleted:
            raise NotFound(f"Request {request_id} not found")
        logger.info("request %s deleted by %s", request_id, caller.id)

    def _transition(
        self, request_id: str, change: Callable[[HelpRequest], HelpRequest]
    ) -> HelpRequest:
        try:
            updated = self.requests.transition(request_id, change)
        except (Forbidden, InvalidState) as e:
            logger.warning(
                "transition of %s rejected: %s", request_id, e.detail
            )
            raise
        if updated is None:
            raise NotFound(f"Request {request_id} not found")
        return updated
