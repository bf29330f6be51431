import logging
import math
from typing import TypeVar

from helphive.database import IdentityStore
from helphive.geo import distance_km
from helphive.lifecycle import RequestLifecycle
from helphive.models import (
    Caller,
    EnrichedHelpRequest,
    HelpRequest,
    RequestStatus,
    Urgency,
)

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"

T = TypeVar("T", bound=HelpRequest)

URGENCY_RANK = {Urgency.HIGH: 0, Urgency.MEDIUM: 1, Urgency.LOW: 2}


def enrich(
    request: HelpRequest,
    accounts: IdentityStore,
    *,
    viewer_coordinates: tuple[float, float] | None = None,
    unknown_user_name: str = UNKNOWN_USER,
) -> EnrichedHelpRequest:
    requester = accounts.get(request.requester_id)
    if requester is None:
        logger.warning(
            "requester %s of request %s not found; using placeholder name",
            request.requester_id,
            request.id,
        )
        requester_name = unknown_user_name
    else:
        requester_name = requester.name

    distance = None
    if viewer_coordinates is not None:
        lat, lng = viewer_coordinates
        distance = distance_km(lat, lng, request.latitude, request.longitude)

    return EnrichedHelpRequest(
        **request.model_dump(),
        requester_name=requester_name,
        distance_km=distance,
    )


def build_feed(
    lifecycle: RequestLifecycle,
    viewer: Caller,
    *,
    status: RequestStatus | None = None,
    requester_id: str | None = None,
    unknown_user_name: str = UNKNOWN_USER,
) -> list[EnrichedHelpRequest]:
    """
    Requests visible to `viewer`, enriched with the requester's name and the
    distance from the viewer.

    Overdue requests are expired first. With known viewer coordinates the feed
    is sorted nearest first; otherwise the store's newest-first order is kept
    and every distance is None.
    """
    requests = lifecycle.list_requests(
        status=status, requester_id=requester_id
    )
    coordinates = viewer.coordinates

    feed = [
        enrich(
            r,
            lifecycle.accounts,
            viewer_coordinates=coordinates,
            unknown_user_name=unknown_user_name,
        )
        for r in requests
    ]

    if coordinates is not None:
        feed.sort(
            key=lambda r: math.inf if r.distance_km is None else r.distance_km
        )
    return feed


def order_by_urgency(requests: list[T]) -> list[T]:
    """
    Stable sort by urgency, high first. Requests of equal urgency keep their
    incoming order, so a distance-sorted feed stays nearest first within
    each urgency band.
    """
    return sorted(requests, key=lambda r: URGENCY_RANK[r.urgency])
