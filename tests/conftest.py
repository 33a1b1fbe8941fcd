import os

# Nunca tocar no banco padrão durante os testes
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.status_transition import TransitionEngine  # noqa: E402
from app.database import Base, build_engine  # noqa: E402
from app.database_models import StatusType, Vehicle  # noqa: E402
from app.models.status import NewStatus  # noqa: E402

ACTING_USER = 7


@pytest.fixture
def db_engine(tmp_path):
    """Banco SQLite em arquivo temporário, com o mesmo controle de lock da aplicação."""
    engine = build_engine(f"sqlite:///{tmp_path / 'frota_test.db'}", lock_timeout=10)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def status_type_ids(session_factory):
    """Cria os tipos 1=Ativo, 2=Em manutenção, 3=Inativo."""
    db = session_factory()
    try:
        types = [
            StatusType(name="Ativo"),
            StatusType(name="Em manutenção", specification="Revisão programada"),
            StatusType(name="Inativo"),
        ]
        db.add_all(types)
        db.commit()
        return [t.id for t in types]
    finally:
        db.close()


@pytest.fixture
def vehicle_id(session_factory, status_type_ids):
    db = session_factory()
    try:
        vehicle = Vehicle(plate="ABC1D23", model="Fiorino")
        db.add(vehicle)
        db.commit()
        return vehicle.id
    finally:
        db.close()


@pytest.fixture
def transition_engine(session_factory):
    return TransitionEngine(session_factory)


def new_status(status_type_id, day, km, observation=None):
    """Atalho para montar a proposta de transição."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return NewStatus(status_type_id=status_type_id, effective_date=day, km=km, observation=observation)
