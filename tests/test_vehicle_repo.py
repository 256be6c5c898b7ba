"""Tests for the vehicle repository (store contract) and the audit trail."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from fleetgrid.concurrency.outcomes import Accepted, Rejected
from fleetgrid.concurrency.tokens import VersionToken, new_version_token
from fleetgrid.database.audit_repo import (
    ACTION_CREATED,
    ACTION_DELETED,
    ACTION_MODIFIED,
    ANONYMOUS_USER,
    load_changes,
    query_audit_for_vehicle,
)
from fleetgrid.database import vehicle_repo
from fleetgrid.database.schema import Vehicle
from fleetgrid.database.vehicle_repo import (
    create_vehicle,
    delete_vehicle,
    get_current_token,
    load_vehicle,
    query_changed_since,
    query_vehicles,
    write_if_token_matches,
)
from fleetgrid.errors import RecordNotFound, StoreUnavailable
from fleetgrid.utils.time import to_utc_iso
from fleetgrid.vehicles.vehicle_models import FuelLevel


def test_create_assigns_id_token_and_timestamp(session, make_vehicle):
    record, token = create_vehicle(session, make_vehicle(id=999), acting_user="alice")
    session.commit()

    assert record.id == 1
    assert record.last_updated.endswith("Z")
    assert isinstance(token, VersionToken)
    assert get_current_token(session, record.id) == token

    row = session.query(Vehicle).filter(Vehicle.id == record.id).one()
    assert row.created_by == "alice"
    assert row.modified_by == "alice"


def test_create_writes_created_audit_row(session, make_vehicle):
    record, _ = create_vehicle(session, make_vehicle(), acting_user=None)
    session.commit()

    rows = query_audit_for_vehicle(session, record.id)
    assert len(rows) == 1
    assert rows[0].action == ACTION_CREATED
    assert rows[0].user == ANONYMOUS_USER
    assert load_changes(rows[0])["license_number"] == "AB-0001"


def test_load_vehicle_returns_snapshot_and_token(session, make_vehicle, add_vehicles):
    [(stored, token)] = add_vehicles(session, [make_vehicle()])

    loaded = load_vehicle(session, stored.id)

    assert loaded == (stored, token)
    assert load_vehicle(session, 12345) is None
    assert get_current_token(session, 12345) is None


def test_write_with_matching_token_is_accepted(session, make_vehicle, add_vehicles):
    [(stored, token)] = add_vehicles(session, [make_vehicle()])

    outcome = write_if_token_matches(
        session, stored.id, stored.with_changes(mileage=43000), token, acting_user="bob"
    )
    session.commit()

    assert isinstance(outcome, Accepted)
    assert outcome.record.mileage == 43000
    assert outcome.token != token
    assert get_current_token(session, stored.id) == outcome.token

    audit = query_audit_for_vehicle(session, stored.id)
    assert [row.action for row in audit] == [ACTION_MODIFIED, ACTION_CREATED]
    changes = load_changes(audit[0])
    assert changes["mileage"] == [42000, 43000]
    assert "brand" not in changes
    assert audit[0].user == "bob"


def test_write_with_stale_token_is_rejected_and_writes_nothing(session, make_vehicle, add_vehicles):
    [(stored, token)] = add_vehicles(session, [make_vehicle()])
    stale = new_version_token()

    outcome = write_if_token_matches(session, stored.id, stored.with_changes(mileage=1), stale)
    session.commit()

    assert isinstance(outcome, Rejected)
    assert outcome.current_token == token
    assert outcome.current_record == stored
    assert load_vehicle(session, stored.id) == (stored, token)
    assert len(query_audit_for_vehicle(session, stored.id)) == 1


def test_same_token_cannot_win_twice(session, make_vehicle, add_vehicles):
    [(stored, token)] = add_vehicles(session, [make_vehicle()])

    first = write_if_token_matches(session, stored.id, stored.with_changes(brand="Opel"), token)
    session.commit()
    second = write_if_token_matches(session, stored.id, stored.with_changes(brand="Seat"), token)
    session.commit()

    assert isinstance(first, Accepted)
    assert isinstance(second, Rejected)
    assert second.current_record.brand == "Opel"
    assert second.current_token == first.token


def test_only_editable_fields_are_written(session, make_vehicle, add_vehicles):
    [(stored, token)] = add_vehicles(session, [make_vehicle()])
    edited = stored.model_copy(update={"last_updated": "1999-01-01T00:00:00.000000Z", "tank": FuelLevel.HALF})

    outcome = write_if_token_matches(session, stored.id, edited, token)

    assert outcome.record.tank is FuelLevel.HALF
    assert outcome.record.last_updated != "1999-01-01T00:00:00.000000Z"


def test_write_to_missing_vehicle_raises_not_found(session, make_vehicle):
    with pytest.raises(RecordNotFound) as exc_info:
        write_if_token_matches(session, 77, make_vehicle(id=77), new_version_token())
    assert exc_info.value.record_id == 77


def test_delete_found_and_not_found(session, make_vehicle, add_vehicles):
    [(stored, _)] = add_vehicles(session, [make_vehicle()])

    assert delete_vehicle(session, stored.id, acting_user="carol") is True
    session.commit()
    assert load_vehicle(session, stored.id) is None
    assert delete_vehicle(session, stored.id) is False

    audit = query_audit_for_vehicle(session, stored.id)
    assert audit[0].action == ACTION_DELETED
    assert audit[0].user == "carol"
    assert load_changes(audit[0])["brand"] == "Ford"


def test_query_vehicles_rejects_bad_window(session):
    with pytest.raises(ValueError):
        query_vehicles(session, None, Vehicle.brand, True, skip=-1, take=10)
    with pytest.raises(ValueError):
        query_vehicles(session, None, Vehicle.brand, True, skip=0, take=0)


def test_query_vehicles_breaks_ties_by_id(session, make_vehicle, add_vehicles):
    stored = add_vehicles(
        session,
        [make_vehicle(license_number=f"SAME-{i}", brand="Ford") for i in range(5)],
    )
    ids = [record.id for record, _ in stored]

    asc = query_vehicles(session, None, Vehicle.brand, True, skip=0, take=10)
    desc = query_vehicles(session, None, Vehicle.brand, False, skip=0, take=10)

    assert [r.id for r in asc] == sorted(ids)
    assert [r.id for r in desc] == sorted(ids, reverse=True)


def test_changed_since(session, make_vehicle, add_vehicles):
    before = to_utc_iso(datetime.now(timezone.utc) - timedelta(seconds=1))
    stored = add_vehicles(session, [make_vehicle(license_number=f"CH-{i}") for i in range(3)])
    after = to_utc_iso(datetime.now(timezone.utc) + timedelta(minutes=1))

    changed = query_changed_since(session, before)

    assert {r.id for r in changed} == {record.id for record, _ in stored}
    assert query_changed_since(session, after) == []


def test_transient_errors_become_store_unavailable(session, make_vehicle, add_vehicles, monkeypatch):
    [(stored, token)] = add_vehicles(session, [make_vehicle()])

    def locked(*args, **kwargs):
        raise OperationalError("UPDATE vehicles ...", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "execute", locked)
    with pytest.raises(StoreUnavailable):
        write_if_token_matches(session, stored.id, stored.with_changes(mileage=5), token)


def test_integrity_errors_are_not_masked(session, make_vehicle, monkeypatch):
    def broken_flush(*args, **kwargs):
        raise IntegrityError("INSERT INTO vehicles ...", {}, Exception("constraint failed"))

    monkeypatch.setattr(session, "flush", broken_flush)
    with pytest.raises(IntegrityError):
        create_vehicle(session, make_vehicle())


def test_writer_losing_the_race_after_its_read_is_rejected(session_factory, make_vehicle, monkeypatch):
    """Another writer commits between the token check and the conditional UPDATE."""
    with session_factory() as s:
        stored, t1 = create_vehicle(s, make_vehicle())
        s.commit()

    real_find = vehicle_repo.find_vehicle_by_id
    winner = []

    def find_then_let_other_writer_commit(session, vehicle_id):
        row = real_find(session, vehicle_id)
        if not winner:
            winner.append(None)
            with session_factory() as other:
                outcome = write_if_token_matches(other, vehicle_id, stored.with_changes(mileage=5), t1)
                other.commit()
            winner[0] = outcome
        return row

    monkeypatch.setattr(vehicle_repo, "find_vehicle_by_id", find_then_let_other_writer_commit)

    with session_factory() as s:
        outcome = write_if_token_matches(s, stored.id, stored.with_changes(mileage=7), t1)
        s.commit()

    assert isinstance(winner[0], Accepted)
    t2 = winner[0].token
    assert isinstance(outcome, Rejected)
    assert outcome.current_token == t2
    assert outcome.current_record.mileage == 5

    with session_factory() as s:
        assert get_current_token(s, stored.id) == t2
        assert [row.action for row in query_audit_for_vehicle(s, stored.id)] == [ACTION_MODIFIED, ACTION_CREATED]
