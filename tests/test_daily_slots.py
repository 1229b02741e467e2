import threading
from datetime import date, datetime
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import ErrorKind
from app.db.base import Base
from app.models.daily_slot import DailySlotSet, TimeSlot
from app.services.daily_slots import DailySlotStore

DAY = date(2026, 3, 10)

MORNING = [
    {"start_time": "09:00", "end_time": "10:00", "max_bookings": 2},
    {"start_time": "10:00", "end_time": "11:00"},
]


@pytest.fixture
def store(db) -> DailySlotStore:
    return DailySlotStore(db)


@pytest.fixture
def slot_set(store) -> DailySlotSet:
    return store.create_for_date(DAY, MORNING, actor="admin-1").data


def test_create_for_date(store):
    result = store.create_for_date(DAY, MORNING, actor="admin-1", notes="Holi week")

    assert result.success
    slot_set = result.data
    assert slot_set.date == DAY
    assert slot_set.created_by == "admin-1"
    assert [(s.start_time, s.max_bookings) for s in slot_set.slots] == [("09:00", 2), ("10:00", 10)]
    assert all(s.current_bookings == 0 for s in slot_set.slots)


def test_duplicate_date_is_rejected_regardless_of_time_component(store, slot_set):
    result = store.create_for_date(datetime(2026, 3, 10, 17, 30), MORNING, actor="admin-2")

    assert result.kind == ErrorKind.CONFLICT
    assert result.code == "DUPLICATE_DATE"


@pytest.mark.parametrize(
    "slots, code",
    [
        ([], "EMPTY_SLOTS"),
        ([{"start_time": "9am", "end_time": "10:00"}], "INVALID_TIME_FORMAT"),
        ([{"start_time": "10:00", "end_time": "10:00"}], "INVALID_SLOT_RANGE"),
        ([{"start_time": "09:00", "end_time": "10:00", "max_bookings": 101}], "INVALID_CAPACITY"),
        ([{"start_time": "09:00", "end_time": "10:00", "max_bookings": 0}], "INVALID_CAPACITY"),
        (
            [{"start_time": "09:00", "end_time": "10:30"}, {"start_time": "10:00", "end_time": "11:00"}],
            "OVERLAPPING_SLOTS",
        ),
    ],
)
def test_create_validates_slots(store, slots, code):
    result = store.create_for_date(DAY, slots, actor="admin")
    assert result.kind == ErrorKind.VALIDATION
    assert result.code == code


def test_add_slot_rejects_overlap(store, slot_set):
    result = store.add_slot(DAY, {"start_time": "10:30", "end_time": "11:30"})

    assert result.kind == ErrorKind.CONFLICT
    assert result.code == "OVERLAP"


def test_add_adjacent_slot(store, slot_set):
    result = store.add_slot(DAY, {"start_time": "11:00", "end_time": "12:00", "max_bookings": 3})

    assert result.success
    assert [s.start_time for s in result.data.slots] == ["09:00", "10:00", "11:00"]


def test_add_slot_without_slot_set(store):
    assert store.add_slot(DAY, {"start_time": "11:00", "end_time": "12:00"}).kind == ErrorKind.NOT_FOUND


def test_book_until_full(store, slot_set):
    slot_id = slot_set.slots[0].id

    assert store.book(DAY, slot_id).data.current_bookings == 1
    assert store.book(DAY, slot_id).data.current_bookings == 2

    result = store.book(DAY, slot_id)
    assert result.kind == ErrorKind.CAPACITY_EXCEEDED
    assert result.code == "FULL"


def test_book_unavailable_slot(store, slot_set, db):
    slot = slot_set.slots[1]
    slot.is_available = False
    db.commit()

    assert store.book(DAY, slot.id).code == "NOT_AVAILABLE"


def test_book_unknown_slot(store, slot_set):
    assert store.book(DAY, uuid4()).code == "NOT_FOUND"
    assert store.book(date(2026, 3, 11), slot_set.slots[0].id).code == "NOT_FOUND"


def test_release(store, slot_set):
    slot_id = slot_set.slots[0].id
    assert store.release(DAY, slot_id).code == "NO_BOOKINGS"

    store.book(DAY, slot_id)
    result = store.release(DAY, slot_id)
    assert result.success
    assert result.data.current_bookings == 0


def test_update_replaces_slots(store, slot_set):
    result = store.update_for_date(DAY, [{"start_time": "14:00", "end_time": "15:00"}], actor="admin-2")

    assert result.success
    assert [s.start_time for s in result.data.slots] == ["14:00"]


def test_writes_refused_while_slots_have_bookings(store, slot_set):
    slot_id = slot_set.slots[0].id
    store.book(DAY, slot_id)

    update = store.update_for_date(DAY, [{"start_time": "14:00", "end_time": "15:00"}], actor="admin")
    assert update.code == "HAS_BOOKINGS"
    assert update.details["slots_with_bookings"] == [{"time": "09:00-10:00", "current_bookings": 1}]
    assert store.delete_for_date(DAY).code == "HAS_BOOKINGS"
    assert store.remove_slot(DAY, slot_id).code == "HAS_BOOKINGS"


def test_remove_slot_and_delete_for_date(store, slot_set, db):
    removed = store.remove_slot(DAY, slot_set.slots[1].id)
    assert removed.success
    assert removed.data.total_slots == 1

    deleted = store.delete_for_date(DAY)
    assert deleted.data == 1
    assert db.query(TimeSlot).count() == 0
    assert store.get_for_date(DAY).kind == ErrorKind.NOT_FOUND


def test_get_available_excludes_full_and_closed_slots(store, db):
    slot_set = store.create_for_date(
        DAY,
        [
            {"start_time": "09:00", "end_time": "10:00", "max_bookings": 1},
            {"start_time": "10:00", "end_time": "11:00", "is_available": False},
            {"start_time": "11:00", "end_time": "12:00"},
        ],
        actor="admin",
    ).data
    store.book(DAY, slot_set.slots[0].id)

    result = store.get_available(DAY)
    assert [s.start_time for s in result.data] == ["11:00"]
    assert result.details["total_slots"] == 3


def test_get_for_range(store):
    for day in (date(2026, 3, 10), date(2026, 3, 12), date(2026, 3, 20)):
        store.create_for_date(day, MORNING, actor="admin")

    result = store.get_for_range(date(2026, 3, 10), date(2026, 3, 15))
    assert [s.date for s in result.data] == [date(2026, 3, 10), date(2026, 3, 12)]
    assert store.get_for_range(date(2026, 3, 15), date(2026, 3, 10)).kind == ErrorKind.VALIDATION


def test_statistics(store, slot_set):
    store.book(DAY, slot_set.slots[0].id)

    stats = store.statistics()
    assert stats["total_days_with_slots"] == 1
    assert stats["total_slots"] == 2
    assert stats["total_capacity"] == 12
    assert stats["booked_slots"] == 1
    assert stats["available_capacity"] == 11
    assert stats["utilization_rate"] == "8.33%"


def test_concurrent_bookings_have_exactly_one_winner(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'slots.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    slot_set = DailySlotStore(setup).create_for_date(
        DAY, [{"start_time": "09:00", "end_time": "10:00", "max_bookings": 1}], actor="admin"
    ).data
    slot_id = slot_set.slots[0].id
    setup.close()

    workers = 8
    barrier = threading.Barrier(workers)
    codes = []
    lock = threading.Lock()

    def attempt():
        session = Session()
        try:
            barrier.wait()
            result = DailySlotStore(session).book(DAY, slot_id)
            with lock:
                codes.append("OK" if result.success else result.code)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert codes.count("OK") == 1
    assert codes.count("FULL") == workers - 1

    check = Session()
    assert check.get(TimeSlot, slot_id).current_bookings == 1
    check.close()
    engine.dispose()


def test_create_loses_to_a_set_written_after_the_existence_check(store, slot_set):
    with patch.object(store, "exists_for_date", return_value=False):
        result = store.create_for_date(DAY, [{"start_time": "15:00", "end_time": "16:00"}], actor="system")

    assert result.kind == ErrorKind.CONFLICT
    assert result.code == "DUPLICATE_DATE"
    kept = store.get_for_date(DAY).data
    assert kept.created_by == "admin-1"
    assert [s.start_time for s in kept.slots] == ["09:00", "10:00"]


def _book_from_another_session(session_factory, slot_id):
    other = session_factory()
    try:
        assert DailySlotStore(other).book(DAY, slot_id).success
    finally:
        other.close()


@pytest.mark.parametrize("write", ["update", "delete", "remove"])
def test_booking_made_after_the_check_survives_slot_writes(store, slot_set, db, session_factory, write):
    slot_id = slot_set.slots[0].id
    _book_from_another_session(session_factory, slot_id)
    assert slot_set.slots[0].current_bookings == 0   # not yet seen by this session

    if write == "update":
        result = store.update_for_date(DAY, [{"start_time": "14:00", "end_time": "15:00"}], actor="admin")
    elif write == "delete":
        result = store.delete_for_date(DAY)
    else:
        result = store.remove_slot(DAY, slot_id)

    assert result.kind == ErrorKind.STATE_ILLEGAL
    assert result.code == "HAS_BOOKINGS"
    db.expire_all()
    assert db.query(TimeSlot).count() == 2
    assert db.get(TimeSlot, slot_id).current_bookings == 1
