"""Testes do motor de transição de situação."""
import logging
import threading
from datetime import date

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from app.core.status_transition import TransitionEngine, validate_transition
from app.database import begin_write
from app.database_models import OdometerReading, StatusDate, Vehicle, VehicleStatus
from app.errors import (
    ConflictError,
    InvalidInputError,
    InvalidOdometerError,
    NotFoundError,
    TransitionFailedError,
    VehicleStatusError,
)
from app.models.status import KM_MAX
from app.stores import SqlStatusHistoryStore

from conftest import ACTING_USER, new_status


def _counts(session_factory):
    db = session_factory()
    try:
        return (
            db.query(OdometerReading).count(),
            db.query(StatusDate).count(),
            db.query(VehicleStatus).count(),
        )
    finally:
        db.close()


def _current_status_type(session_factory, vehicle_id):
    db = session_factory()
    try:
        return db.query(Vehicle).filter(Vehicle.id == vehicle_id).one().status_type_id
    finally:
        db.close()


def _latest_status_type(session_factory, vehicle_id):
    db = session_factory()
    try:
        latest = (
            db.query(VehicleStatus)
            .filter(VehicleStatus.vehicle_id == vehicle_id)
            .order_by(VehicleStatus.id.desc())
            .first()
        )
        return latest.status_type_id if latest else None
    finally:
        db.close()


class TestValidateTransition:
    """Regras aplicadas antes de qualquer gravação."""

    def test_same_status_is_conflict(self):
        with pytest.raises(ConflictError):
            validate_transition(2, 0, date.min, new_status(2, "2024-01-10", 1000))

    def test_conflict_wins_over_odometer_rules(self):
        with pytest.raises(ConflictError):
            validate_transition(2, 5000, date(2024, 2, 1), new_status(2, "2024-01-01", 10))

    def test_backfill_with_higher_km(self):
        with pytest.raises(InvalidOdometerError) as exc:
            validate_transition(1, 1000, date(2024, 1, 10), new_status(2, "2024-01-05", 1500))
        assert exc.value.reason == InvalidOdometerError.BACKFILL_EXCEEDS_CURRENT

    def test_future_date_with_lower_km(self):
        with pytest.raises(InvalidOdometerError) as exc:
            validate_transition(1, 1000, date(2024, 1, 10), new_status(2, "2030-01-01", 900))
        assert exc.value.reason == InvalidOdometerError.ODOMETER_DECREASE

    def test_backfill_with_lower_km_reports_decrease(self):
        with pytest.raises(InvalidOdometerError) as exc:
            validate_transition(1, 1000, date(2024, 1, 10), new_status(2, "2024-01-05", 900))
        assert exc.value.reason == InvalidOdometerError.ODOMETER_DECREASE

    def test_same_date_same_km_is_accepted(self):
        validate_transition(1, 1000, date(2024, 1, 10), new_status(2, "2024-01-10", 1000))

    def test_baseline_accepts_anything_non_negative(self):
        validate_transition(None, 0, date.min, new_status(1, "1990-06-01", 0))


class TestPropose:
    def test_first_transition_on_empty_history(self, transition_engine, session_factory, vehicle_id):
        record = transition_engine.propose(
            str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000, "Saiu para revisão")
        )

        assert record.km == 1000
        assert record.effective_date == date(2024, 1, 10)
        assert record.status_type_id == 2
        assert record.created_by == ACTING_USER
        assert record.observation == "Saiu para revisão"
        assert _current_status_type(session_factory, vehicle_id) == 2
        assert _counts(session_factory) == (1, 1, 1)

    def test_result_points_to_persisted_records(self, transition_engine, session_factory, vehicle_id):
        record = transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        db = session_factory()
        try:
            reading = db.get(OdometerReading, record.odometer_reading_id)
            status_date = db.get(StatusDate, record.status_date_id)
            status = db.get(VehicleStatus, record.id)
            assert reading.km == record.km == status.km
            assert status_date.effective_date == record.effective_date == status.effective_date
            assert reading.created_by == status_date.created_by == ACTING_USER
        finally:
            db.close()

    def test_first_transition_accepts_zero_km(self, transition_engine, vehicle_id):
        record = transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(1, "2000-01-01", 0))
        assert record.km == 0

    def test_same_status_is_rejected(self, transition_engine, session_factory, vehicle_id):
        transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        with pytest.raises(ConflictError):
            transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-02-10", 2000))
        assert _counts(session_factory) == (1, 1, 1)

    def test_backfill_higher_km_is_rejected(self, transition_engine, session_factory, vehicle_id):
        transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        with pytest.raises(InvalidOdometerError) as exc:
            transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(3, "2024-01-05", 1500))
        assert exc.value.reason == InvalidOdometerError.BACKFILL_EXCEEDS_CURRENT
        assert _counts(session_factory) == (1, 1, 1)
        assert _current_status_type(session_factory, vehicle_id) == 2

    def test_later_date_lower_km_is_rejected(self, transition_engine, session_factory, vehicle_id):
        transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        with pytest.raises(InvalidOdometerError) as exc:
            transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(3, "2024-01-15", 900))
        assert exc.value.reason == InvalidOdometerError.ODOMETER_DECREASE
        assert _current_status_type(session_factory, vehicle_id) == 2

    def test_backfill_with_current_km_is_accepted(self, transition_engine, vehicle_id):
        transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        record = transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(3, "2024-01-05", 1000))
        assert record.effective_date == date(2024, 1, 5)
        assert record.km == 1000

    def test_odometer_is_monotonic_over_a_sequence(self, transition_engine, session_factory, vehicle_id):
        steps = [
            (1, "2024-01-01", 100),
            (2, "2024-02-01", 100),
            (1, "2024-03-01", 2500),
            (3, "2024-03-01", 2600),
        ]
        for status_type_id, day, km in steps:
            transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(status_type_id, day, km))

        db = session_factory()
        try:
            rows = (
                db.query(VehicleStatus)
                .filter(VehicleStatus.vehicle_id == vehicle_id)
                .order_by(VehicleStatus.effective_date, VehicleStatus.id)
                .all()
            )
            kms = [row.km for row in rows]
        finally:
            db.close()
        assert kms == sorted(kms)
        assert _current_status_type(session_factory, vehicle_id) == 3

    @pytest.mark.parametrize("raw_id", ["abc", "-1", "", "1.5", " ", None])
    def test_malformed_vehicle_id(self, transition_engine, raw_id):
        with pytest.raises(InvalidInputError):
            transition_engine.propose(raw_id, ACTING_USER, new_status(1, "2024-01-01", 10))

    def test_vehicle_id_accepts_surrounding_spaces(self, transition_engine, vehicle_id):
        record = transition_engine.propose(f" {vehicle_id} ", ACTING_USER, new_status(1, "2024-01-01", 10))
        assert record.vehicle_id == vehicle_id

    def test_unknown_vehicle(self, transition_engine, vehicle_id):
        with pytest.raises(NotFoundError):
            transition_engine.propose(str(vehicle_id + 100), ACTING_USER, new_status(1, "2024-01-01", 10))

    def test_unknown_status_type_writes_nothing(self, transition_engine, session_factory, vehicle_id):
        with pytest.raises(NotFoundError):
            transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(99, "2024-01-01", 10))
        assert _counts(session_factory) == (0, 0, 0)
        assert _current_status_type(session_factory, vehicle_id) is None


class _BrokenStatusStore(SqlStatusHistoryStore):
    """Falha depois que km e data já foram enviados ao banco."""

    def insert(self, db, **kwargs):
        raise OperationalError("INSERT INTO vehicle_statuses", {}, Exception("disk I/O error"))


class TestWriteFailure:
    def test_failure_rolls_back_everything(self, session_factory, vehicle_id, caplog):
        engine = TransitionEngine(session_factory, statuses=_BrokenStatusStore())

        with caplog.at_level(logging.ERROR, logger="app.core.status_transition"):
            with pytest.raises(TransitionFailedError) as exc:
                engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        # Detalhe do banco fica no log, não na mensagem do erro
        assert "disk I/O" not in exc.value.message
        assert "disk I/O error" in caplog.text
        assert _counts(session_factory) == (0, 0, 0)
        assert _current_status_type(session_factory, vehicle_id) is None

    def test_engine_still_works_after_failure(self, session_factory, vehicle_id):
        broken = TransitionEngine(session_factory, statuses=_BrokenStatusStore())
        with pytest.raises(TransitionFailedError):
            broken.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))

        record = TransitionEngine(session_factory).propose(
            str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000)
        )
        assert record.km == 1000


def _run_concurrently(engine, vehicle_id, proposals):
    """Dispara todas as propostas ao mesmo tempo; devolve (sucessos, erros)."""
    barrier = threading.Barrier(len(proposals))
    successes, errors = [], []
    lock = threading.Lock()

    def worker(proposal):
        barrier.wait()
        try:
            record = engine.propose(str(vehicle_id), ACTING_USER, proposal)
        except VehicleStatusError as e:
            with lock:
                errors.append(e)
        else:
            with lock:
                successes.append(record)

    threads = [threading.Thread(target=worker, args=(p,)) for p in proposals]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return successes, errors


class TestConcurrentTransitions:
    def test_lower_km_loses_against_existing_history(self, transition_engine, session_factory, vehicle_id):
        transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(1, "2024-01-01", 95))

        successes, errors = _run_concurrently(
            transition_engine,
            vehicle_id,
            [new_status(2, "2024-01-10", 100), new_status(3, "2024-01-10", 90)],
        )

        assert [s.km for s in successes] == [100]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidOdometerError)
        assert _current_status_type(session_factory, vehicle_id) == _latest_status_type(session_factory, vehicle_id) == 2

    def test_same_transition_commits_once(self, transition_engine, session_factory, vehicle_id):
        transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(1, "2024-01-01", 95))

        successes, errors = _run_concurrently(
            transition_engine,
            vehicle_id,
            [new_status(2, "2024-01-10", 100), new_status(2, "2024-01-10", 100)],
        )

        # O segundo a entrar já enxerga a situação 2 gravada
        assert len(successes) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], ConflictError)
        assert _counts(session_factory) == (2, 2, 2)
        assert _current_status_type(session_factory, vehicle_id) == _latest_status_type(session_factory, vehicle_id)


class TestLocking:
    def test_open_reader_does_not_block_transition(self, session_factory, vehicle_id):
        reader = session_factory()
        try:
            # Leitura deixada aberta, como uma rota GET ainda em andamento
            assert reader.query(Vehicle).first() is not None

            engine = TransitionEngine(session_factory, lock_timeout=0.3)
            record = engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 1000))
        finally:
            reader.close()

        assert record.km == 1000
        assert _counts(session_factory) == (1, 1, 1)

    def test_readers_do_not_block_each_other(self, session_factory, vehicle_id):
        first, second = session_factory(), session_factory()
        try:
            assert first.query(Vehicle).count() == 1
            assert second.query(Vehicle).count() == 1
        finally:
            first.close()
            second.close()

    def test_lock_timeout_aborts_without_writing(self, session_factory, vehicle_id):
        holder = session_factory()
        begin_write(holder)
        holder.query(Vehicle).filter(Vehicle.id == vehicle_id).first()

        engine = TransitionEngine(session_factory, lock_timeout=0.3)
        try:
            with pytest.raises(TransitionFailedError) as exc:
                engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 5))
        finally:
            holder.close()

        assert exc.value.message == "Não foi possível criar a situação do veículo"
        assert "locked" not in exc.value.message
        assert _counts(session_factory) == (0, 0, 0)
        assert _current_status_type(session_factory, vehicle_id) is None

        # Lock liberado: a mesma proposta agora passa
        record = engine.propose(str(vehicle_id), ACTING_USER, new_status(2, "2024-01-10", 5))
        assert record.km == 5


class TestKmBounds:
    def test_km_above_storage_limit_is_invalid_input(self):
        with pytest.raises(ValidationError):
            new_status(1, "2024-01-01", KM_MAX + 1)

    def test_km_at_storage_limit_is_persisted(self, transition_engine, vehicle_id):
        record = transition_engine.propose(str(vehicle_id), ACTING_USER, new_status(1, "2024-01-01", KM_MAX))
        assert record.km == KM_MAX
