"""
Camada de acesso aos dados usada pelo motor de transição e pela consulta.

Cada "store" recebe a sessão ativa em cada chamada: quem abre e fecha a
transação é o chamador (o motor), assim as quatro gravações de uma transição
ficam na mesma unidade atômica.
"""
from datetime import date
from typing import List, Optional, Protocol, Tuple

from sqlalchemy.orm import Session, joinedload

from app.database_models import (
    OdometerReading,
    StatusDate,
    StatusType,
    Vehicle,
    VehicleStatus,
)


# ─────────────────────────────────
# Interfaces
# ─────────────────────────────────
class VehicleStore(Protocol):
    def find_by_id(self, db: Session, vehicle_id: int, *, lock: bool = False) -> Optional[Vehicle]: ...

    def update_status_type(self, db: Session, vehicle: Vehicle, status_type_id: int) -> Vehicle: ...


class StatusTypeStore(Protocol):
    def find_by_id(self, db: Session, status_type_id: int) -> Optional[StatusType]: ...


class OdometerStore(Protocol):
    def find_latest(self, db: Session, vehicle_id: int) -> Optional[OdometerReading]: ...

    def insert(self, db: Session, vehicle_id: int, km: int, created_by: int) -> OdometerReading: ...


class StatusDateStore(Protocol):
    def find_latest(self, db: Session, vehicle_id: int) -> Optional[StatusDate]: ...

    def insert(self, db: Session, vehicle_id: int, effective_date: date, created_by: int) -> StatusDate: ...


class StatusHistoryStore(Protocol):
    def insert(
        self,
        db: Session,
        vehicle_id: int,
        status_type_id: int,
        odometer_reading: OdometerReading,
        status_date: StatusDate,
        observation: Optional[str],
        created_by: int,
    ) -> VehicleStatus: ...

    def find_by_vehicle(
        self, db: Session, vehicle_id: int, offset: int = 0, limit: Optional[int] = None
    ) -> Tuple[List[VehicleStatus], int]: ...


# ─────────────────────────────────
# Implementações SQLAlchemy
# ─────────────────────────────────
class SqlVehicleStore:
    def find_by_id(self, db: Session, vehicle_id: int, *, lock: bool = False) -> Optional[Vehicle]:
        """
        Busca o veículo. Com ``lock=True`` trava a linha até o fim da
        transação (SELECT ... FOR UPDATE), serializando transições do mesmo veículo.
        """
        query = db.query(Vehicle).filter(Vehicle.id == vehicle_id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def update_status_type(self, db: Session, vehicle: Vehicle, status_type_id: int) -> Vehicle:
        vehicle.status_type_id = status_type_id
        db.flush()
        return vehicle


class SqlStatusTypeStore:
    def find_by_id(self, db: Session, status_type_id: int) -> Optional[StatusType]:
        return db.query(StatusType).filter(StatusType.id == status_type_id).first()


class SqlOdometerStore:
    def find_latest(self, db: Session, vehicle_id: int) -> Optional[OdometerReading]:
        # "Última" leitura = a criada por último (maior id), não a de maior km
        return (
            db.query(OdometerReading)
            .filter(OdometerReading.vehicle_id == vehicle_id)
            .order_by(OdometerReading.id.desc())
            .first()
        )

    def insert(self, db: Session, vehicle_id: int, km: int, created_by: int) -> OdometerReading:
        reading = OdometerReading(vehicle_id=vehicle_id, km=km, created_by=created_by)
        db.add(reading)
        return reading


class SqlStatusDateStore:
    def find_latest(self, db: Session, vehicle_id: int) -> Optional[StatusDate]:
        return (
            db.query(StatusDate)
            .filter(StatusDate.vehicle_id == vehicle_id)
            .order_by(StatusDate.id.desc())
            .first()
        )

    def insert(self, db: Session, vehicle_id: int, effective_date: date, created_by: int) -> StatusDate:
        record = StatusDate(vehicle_id=vehicle_id, effective_date=effective_date, created_by=created_by)
        db.add(record)
        return record


class SqlStatusHistoryStore:
    def insert(
        self,
        db: Session,
        vehicle_id: int,
        status_type_id: int,
        odometer_reading: OdometerReading,
        status_date: StatusDate,
        observation: Optional[str],
        created_by: int,
    ) -> VehicleStatus:
        """Cria a situação apontando para os registros de km e data já gravados."""
        status = VehicleStatus(
            vehicle_id=vehicle_id,
            status_type_id=status_type_id,
            odometer_reading_id=odometer_reading.id,
            status_date_id=status_date.id,
            km=odometer_reading.km,
            effective_date=status_date.effective_date,
            observation=observation,
            created_by=created_by,
        )
        db.add(status)
        return status

    def find_by_vehicle(
        self, db: Session, vehicle_id: int, offset: int = 0, limit: Optional[int] = None
    ) -> Tuple[List[VehicleStatus], int]:
        """Histórico do veículo, mais recente primeiro, e o total de registros."""
        base = db.query(VehicleStatus).filter(VehicleStatus.vehicle_id == vehicle_id)
        total = base.count()

        query = base.options(
            joinedload(VehicleStatus.status_type),
            joinedload(VehicleStatus.odometer_reading),
        ).order_by(VehicleStatus.created_at.desc(), VehicleStatus.id.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all(), total
