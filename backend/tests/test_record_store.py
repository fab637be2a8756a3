import pytest

from app import models
from app.core.errors import RecordNotFound, StaleRecordError, UnknownRecordType, ValidationError
from app.services.audit import list_changes
from app.services.record_store import RecordStore


def test_add_starts_at_version_one(db_session):
    store = RecordStore(db_session, actor="clerk")
    farmer_id = store.add("farmers", {"name": "Suresh Singh", "village": "Panipat"})
    db_session.commit()

    farmer = store.require("farmers", farmer_id)
    assert farmer.version == 1
    assert farmer.active is True

    changes = list_changes(db_session, entity_type="farmers", entity_id=farmer_id)
    assert len(changes) == 1
    assert changes[0].action == models.ChangeAction.INSERT
    assert changes[0].actor == "clerk"
    assert changes[0].after["name"] == "Suresh Singh"


def test_update_bumps_version_and_logs_diff(db_session):
    store = RecordStore(db_session)
    mill_id = store.add("mills", {"name": "Modern Rice Mill", "village": "Karnal"})
    store.update("mills", mill_id, {"village": "Kurukshetra"}, expected_version=1)
    db_session.commit()

    mill = store.require("mills", mill_id)
    assert mill.version == 2
    assert mill.village == "Kurukshetra"

    latest = list_changes(db_session, entity_type="mills", entity_id=mill_id)[0]
    assert latest.action == models.ChangeAction.UPDATE
    assert latest.before == {"village": "Karnal", "version": 1}
    assert latest.after == {"village": "Kurukshetra", "version": 2}


def test_stale_version_is_rejected(db_session):
    store = RecordStore(db_session)
    farmer_id = store.add("farmers", {"name": "Ravi Kumar"})
    store.update("farmers", farmer_id, {"phone": "9876543210"})

    with pytest.raises(StaleRecordError) as exc:
        store.update("farmers", farmer_id, {"phone": "0000000000"}, expected_version=1)
    assert exc.value.expected == 1
    assert exc.value.actual == 2
    assert store.require("farmers", farmer_id).phone == "9876543210"


def test_delete_is_soft(db_session):
    store = RecordStore(db_session)
    keep = store.add("vehicles", {"number": "HR38AB1234"})
    gone = store.add("vehicles", {"number": "PB12CD5678"})
    store.delete("vehicles", gone)
    db_session.commit()

    assert store.get("vehicles", gone) is None
    assert store.get("vehicles", gone, include_inactive=True).active is False
    assert [v.id for v in store.get_all("vehicles")] == [keep]
    assert len(store.get_all("vehicles", include_inactive=True)) == 2

    latest = list_changes(db_session, entity_type="vehicles", entity_id=gone)[0]
    assert latest.action == models.ChangeAction.DELETE


def test_unknown_record_type(db_session):
    store = RecordStore(db_session)
    with pytest.raises(UnknownRecordType):
        store.get_all("buyers")
    with pytest.raises(UnknownRecordType):
        store.add("buyers", {"name": "x"})


def test_missing_record(db_session):
    with pytest.raises(RecordNotFound):
        RecordStore(db_session).require("farmers", 404)


def test_bookkeeping_fields_cannot_be_written(db_session):
    store = RecordStore(db_session)
    farmer_id = store.add("farmers", {"name": "Ravi Kumar"})
    with pytest.raises(ValidationError) as exc:
        store.update("farmers", farmer_id, {"version": 9, "nickname": "RK"})
    assert {e.field for e in exc.value.errors} == {"nickname", "version"}


def test_required_fields_cannot_be_cleared(db_session):
    store = RecordStore(db_session)
    farmer_id = store.add("farmers", {"name": "Ravi Kumar", "village": "Kharkhoda"})

    with pytest.raises(ValidationError) as exc:
        store.update("farmers", farmer_id, {"name": None})
    assert [e.field for e in exc.value.errors] == ["name"]

    # optional columns still accept null
    farmer = store.update("farmers", farmer_id, {"village": None})
    assert farmer.village is None
    assert farmer.name == "Ravi Kumar"
