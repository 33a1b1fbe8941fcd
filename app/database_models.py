from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, TEXT
from sqlalchemy.orm import relationship
from .database import Base  # Importa o 'Base' declarativo


def _utcnow():
    """Momento atual em UTC, sem fuso (o SQLite não guarda fuso)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# 1. Modelo de Tabela para Usuários
class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255))


# 2. Tipos de situação (dado de referência: "Ativo", "Em manutenção", ...)
class StatusType(Base):
    __tablename__ = "status_types"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    specification = Column(String(255))  # motivo / detalhamento opcional


# 3. Veículos
class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(Integer, primary_key=True, autoincrement=True)
    plate = Column(String(20), unique=True, nullable=False, index=True)
    model = Column(String(100), nullable=False)

    # Ponteiro para a situação atual; só o motor de transição altera
    status_type_id = Column(Integer, ForeignKey("status_types.id"), nullable=True)

    status_type = relationship("StatusType")
    statuses = relationship("VehicleStatus", back_populates="vehicle")


# 4. Leituras de odômetro (somente inclusão)
class OdometerReading(Base):
    __tablename__ = "odometer_readings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    km = Column(Integer, nullable=False)
    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


# 5. Datas de situação (somente inclusão)
class StatusDate(Base):
    __tablename__ = "status_dates"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    effective_date = Column(Date, nullable=False)
    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


# 6. Histórico de situações do veículo (o "livro-razão")
class VehicleStatus(Base):
    __tablename__ = "vehicle_statuses"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    status_type_id = Column(Integer, ForeignKey("status_types.id"), nullable=False)

    # Chaves para os registros criados na mesma transação
    odometer_reading_id = Column(Integer, ForeignKey("odometer_readings.id"), nullable=False)
    status_date_id = Column(Integer, ForeignKey("status_dates.id"), nullable=False)

    # Cópias dos valores persistidos
    effective_date = Column(Date, nullable=False)
    km = Column(Integer, nullable=False)

    observation = Column(TEXT)
    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    # Relacionamentos
    vehicle = relationship("Vehicle", back_populates="statuses")
    status_type = relationship("StatusType")
    odometer_reading = relationship("OdometerReading")
    status_date = relationship("StatusDate")
