"""
Motor de transição de situação de veículos.

Valida a nova situação contra o último km e a última data de situação do
veículo e grava, numa única transação, a leitura de odômetro, a data de
situação, o registro de situação e o ponteiro de situação atual do veículo.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from app import config
from app.core.params import parse_vehicle_id
from app.database import begin_write
from app.errors import (
    ConflictError,
    InvalidOdometerError,
    NotFoundError,
    TransitionFailedError,
    VehicleStatusError,
)
from app.models.status import NewStatus, StatusRecord
from app.stores import (
    OdometerStore,
    SqlOdometerStore,
    SqlStatusDateStore,
    SqlStatusHistoryStore,
    SqlStatusTypeStore,
    SqlVehicleStore,
    StatusDateStore,
    StatusHistoryStore,
    StatusTypeStore,
    VehicleStore,
)

logger = logging.getLogger(__name__)

# Veículo sem histórico: considera km zero e a menor data possível,
# assim a primeira transição aceita qualquer km >= 0 e qualquer data.
BASELINE_KM = 0
BASELINE_DATE = date.min


def validate_transition(
    current_status_type_id: Optional[int],
    latest_km: int,
    latest_date: date,
    new_status: NewStatus,
) -> None:
    """Aplica as regras de negócio, na ordem; levanta o erro da primeira que falhar."""
    if new_status.status_type_id == current_status_type_id:
        raise ConflictError("Situação de veículo já existente")

    # Data retroativa não pode trazer km maior que o já registrado
    if new_status.effective_date < latest_date and new_status.km > latest_km:
        raise InvalidOdometerError(
            "Km de data passada não pode ser maior que o km atual",
            reason=InvalidOdometerError.BACKFILL_EXCEEDS_CURRENT,
        )

    if new_status.km < latest_km:
        raise InvalidOdometerError(
            "Km atual maior que o km inserido: o odômetro não pode diminuir",
            reason=InvalidOdometerError.ODOMETER_DECREASE,
        )


class TransitionEngine:
    def __init__(
        self,
        session_factory,
        vehicles: Optional[VehicleStore] = None,
        status_types: Optional[StatusTypeStore] = None,
        odometers: Optional[OdometerStore] = None,
        status_dates: Optional[StatusDateStore] = None,
        statuses: Optional[StatusHistoryStore] = None,
        lock_timeout: float = config.LOCK_TIMEOUT_SECONDS,
    ):
        self._session_factory = session_factory
        self._vehicles = vehicles or SqlVehicleStore()
        self._status_types = status_types or SqlStatusTypeStore()
        self._odometers = odometers or SqlOdometerStore()
        self._status_dates = status_dates or SqlStatusDateStore()
        self._statuses = statuses or SqlStatusHistoryStore()
        # Espera máxima pelo lock do veículo: BEGIN IMMEDIATE no SQLite,
        # lock_timeout da transação no PostgreSQL
        self._lock_timeout = lock_timeout

    def propose(self, vehicle_id, acting_user_id: int, new_status: NewStatus) -> StatusRecord:
        """
        Registra uma nova situação para o veículo.

        Erros de validação (id inválido, veículo inexistente, situação repetida,
        km inválido) chegam ao chamador como estão. Qualquer falha durante a
        unidade de trabalho desfaz tudo e vira um único ``TransitionFailedError``.
        """
        id_vehicle = parse_vehicle_id(vehicle_id)

        db = self._session_factory()
        try:
            with db.begin():
                self._begin_unit(db)
                vehicle = self._vehicles.find_by_id(db, id_vehicle, lock=True)
                if vehicle is None:
                    raise NotFoundError("Veículo não encontrado")

                latest_reading = self._odometers.find_latest(db, id_vehicle)
                latest_status_date = self._status_dates.find_latest(db, id_vehicle)

                validate_transition(
                    vehicle.status_type_id,
                    latest_reading.km if latest_reading else BASELINE_KM,
                    latest_status_date.effective_date if latest_status_date else BASELINE_DATE,
                    new_status,
                )
                if self._status_types.find_by_id(db, new_status.status_type_id) is None:
                    raise NotFoundError("Tipo de situação não encontrado")

                record = self._write(db, vehicle, acting_user_id, new_status)
        except VehicleStatusError as e:
            logger.info("Transição rejeitada (veículo %s): %s", id_vehicle, e.message)
            raise
        except Exception:
            logger.exception("Falha ao gravar a transição do veículo %s", id_vehicle)
            raise TransitionFailedError("Não foi possível criar a situação do veículo") from None
        finally:
            db.close()

        logger.info(
            "Veículo %s: situação %s em %s com %s km (por %s)",
            id_vehicle, record.status_type_id, record.effective_date, record.km, acting_user_id,
        )
        return record

    def _begin_unit(self, db: Session):
        begin_write(db, self._lock_timeout)
        if db.get_bind().dialect.name == "postgresql":
            millis = int(self._lock_timeout * 1000)
            db.execute(text(f"SET LOCAL lock_timeout = '{millis}ms'"))

    def _write(self, db: Session, vehicle, acting_user_id: int, new_status: NewStatus) -> StatusRecord:
        reading = self._odometers.insert(db, vehicle.id, new_status.km, acting_user_id)
        status_date = self._status_dates.insert(db, vehicle.id, new_status.effective_date, acting_user_id)
        # Gera os ids de km e data antes de criar a situação que aponta para eles
        db.flush()

        status = self._statuses.insert(
            db,
            vehicle_id=vehicle.id,
            status_type_id=new_status.status_type_id,
            odometer_reading=reading,
            status_date=status_date,
            observation=new_status.observation,
            created_by=acting_user_id,
        )
        self._vehicles.update_status_type(db, vehicle, new_status.status_type_id)
        db.flush()

        # Monta o resultado antes do commit (depois dele os atributos expiram)
        result = StatusRecord.model_validate(status)
        return result.model_copy(update={"km": reading.km, "effective_date": status_date.effective_date})
