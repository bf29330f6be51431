import pytest

from helphive.database import InMemoryKeyValueDatabase
from helphive.errors import Conflict, InvalidState


@pytest.fixture
def db() -> InMemoryKeyValueDatabase[str, int]:
    return InMemoryKeyValueDatabase()


def test_insert_rejects_duplicate_key(db) -> None:
    db.insert("a", 1)
    with pytest.raises(Conflict):
        db.insert("a", 2)
    assert db.get("a") == 1


def test_update_aborted_by_change_leaves_value(db) -> None:
    db.put("a", 1)

    def _refuse(value: int) -> int:
        raise InvalidState("no")

    with pytest.raises(InvalidState):
        db.update("a", _refuse)
    assert db.get("a") == 1
    assert db.update("a", lambda v: v + 1) == 2
    assert db.update("missing", lambda v: v + 1) is None


def test_delete_if_runs_check_first(db) -> None:
    db.put("a", 1)

    def _refuse(value: int) -> None:
        raise InvalidState("no")

    with pytest.raises(InvalidState):
        db.delete_if("a", _refuse)
    assert db.get("a") == 1

    assert db.delete_if("a", lambda v: None) is True
    assert db.delete_if("a", lambda v: None) is False
    assert db.all() == []


def test_update_where_counts_changed_values(db) -> None:
    for key, value in [("a", 1), ("b", 2), ("c", 3)]:
        db.put(key, value)

    assert db.update_where(lambda v: v > 1, lambda v: v * 10) == 2
    assert sorted(db.all()) == [1, 20, 30]
