import logging
import threading
from collections.abc import Callable, MutableMapping
from datetime import datetime
from typing import Generic, TypeVar

from helphive.errors import Conflict
from helphive.models import Account, HelpRequest, RequestStatus

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class InMemoryKeyValueDatabase(Generic[K, V]):
    """
    Simple in-memory key/value database.

    Every operation runs under one lock, so `update` and `delete_if` are
    atomic check-and-write units.
    """

    def __init__(self) -> None:
        self._store: MutableMapping[K, V] = {}
        self._lock = threading.RLock()

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._store[key] = value

    def insert(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._store:
                raise Conflict(f"Duplicate key {key!r}")
            self._store[key] = value

    def get(self, key: K) -> V | None:
        with self._lock:
            return self._store.get(key)

    def all(self) -> list[V]:
        with self._lock:
            return list(self._store.values())

    def update(self, key: K, change: Callable[[V], V]) -> V | None:
        """
        Atomically replace the value at `key` with `change(value)`.

        Returns None if the key is missing. `change` may raise to abort the
        update; the stored value is then left untouched.
        """
        with self._lock:
            value = self._store.get(key)
            if value is None:
                return None
            new_value = change(value)
            self._store[key] = new_value
            return new_value

    def delete_if(self, key: K, check: Callable[[V], None]) -> bool:
        """
        Atomically delete `key` once `check(value)` returns without raising.
        Returns False if the key is missing.
        """
        with self._lock:
            value = self._store.get(key)
            if value is None:
                return False
            check(value)
            del self._store[key]
            return True

    def update_where(
        self, predicate: Callable[[V], bool], change: Callable[[V], V]
    ) -> int:
        with self._lock:
            keys = [k for k, v in self._store.items() if predicate(v)]
            for k in keys:
                self._store[k] = change(self._store[k])
            return len(keys)


Database = InMemoryKeyValueDatabase[str, HelpRequest | Account]


class RequestStore:
    """Help requests, keyed as `request:{id}` in the shared database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _key(request_id: str) -> str:
        return f"request:{request_id}"

    def insert(self, request: HelpRequest) -> HelpRequest:
        self._db.insert(self._key(request.id), request.model_copy())
        return request.model_copy()

    def get(self, request_id: str) -> HelpRequest | None:
        value = self._db.get(self._key(request_id))
        if not isinstance(value, HelpRequest):
            return None
        return value.model_copy()

    def filter(
        self,
        *,
        status: RequestStatus | None = None,
        requester_id: str | None = None,
        volunteer_id: str | None = None,
    ) -> list[HelpRequest]:
        """Matching requests, newest first."""
        requests = [
            r.model_copy()
            for r in self._db.all()
            if isinstance(r, HelpRequest)
            and (status is None or r.status == status)
            and (requester_id is None or r.requester_id == requester_id)
            and (volunteer_id is None or r.volunteer_id == volunteer_id)
        ]
        requests.sort(key=lambda r: r.created_at, reverse=True)
        return requests

    def transition(
        self, request_id: str, change: Callable[[HelpRequest], HelpRequest]
    ) -> HelpRequest | None:
        """
        Apply `change` to the stored request as one atomic unit. `change`
        sees the current stored row, not a cached copy, and may raise to
        reject the transition.
        """

        def _apply(value: HelpRequest | Account) -> HelpRequest | Account:
            if not isinstance(value, HelpRequest):
                return value
            return change(value.model_copy())

        updated = self._db.update(self._key(request_id), _apply)
        if not isinstance(updated, HelpRequest):
            return None
        return updated.model_copy()

    def delete(
        self, request_id: str, check: Callable[[HelpRequest], None]
    ) -> bool:
        def _check(value: HelpRequest | Account) -> None:
            if isinstance(value, HelpRequest):
                check(value)

        return self._db.delete_if(self._key(request_id), _check)

    def expire_overdue(self, now: datetime) -> int:
        """Move every open request past its deadline to expired."""
        expired = self._db.update_where(
            lambda v: isinstance(v, HelpRequest) and v.is_overdue(now),
            lambda v: v.model_copy(update={"status": RequestStatus.EXPIRED}),
        )
        if expired:
            logger.info("expired %d overdue request(s)", expired)
        return expired


class IdentityStore:
    """Accounts, keyed as `account:{id}` in the shared database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _key(account_id: str) -> str:
        return f"account:{account_id}"

    def put(self, account: Account) -> None:
        self._db.put(self._key(account.id), account.model_copy())

    def get(self, account_id: str) -> Account | None:
        value = self._db.get(self._key(account_id))
        if not isinstance(value, Account):
            return None
        return value.model_copy()

    def update_location(
        self, account_id: str, latitude: float, longitude: float
    ) -> Account | None:
        updated = self._db.update(
            self._key(account_id),
            lambda v: v.model_copy(
                update={"latitude": latitude, "longitude": longitude}
            ),
        )
        if not isinstance(updated, Account):
            return None
        return updated.model_copy()
