import logging

from fastapi import APIRouter, Request, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload
from starlette import status

# --- IMPORTAÇÕES DO BANCO DE DADOS (SQLAlchemy) ---
from app.database import get_db
from app.database_models import Vehicle
# --------------------------------------------------

from app.auth_utils import get_current_user
from app.core.params import parse_vehicle_id
from app.errors import NotFoundError
from app.models.vehicle import Vehicle as VehicleOut, VehicleCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


def _to_out(vehicle: Vehicle) -> VehicleOut:
    return VehicleOut(
        id=vehicle.id,
        plate=vehicle.plate,
        model=vehicle.model,
        status_type_id=vehicle.status_type_id,
        status_name=vehicle.status_type.name if vehicle.status_type else None,
    )


@router.get("/", name="list_vehicles")
def list_vehicles(request: Request, db: Session = Depends(get_db)):
    get_current_user(request)

    vehicles_data = db.query(Vehicle).options(
        joinedload(Vehicle.status_type)
    ).order_by(Vehicle.plate).all()

    return [_to_out(v) for v in vehicles_data]


@router.post("/", name="create_vehicle", status_code=status.HTTP_201_CREATED)
def create_vehicle(request: Request, payload: VehicleCreate, db: Session = Depends(get_db)):
    get_current_user(request)

    # Padroniza a placa para a verificação
    plate_str = payload.plate.upper().strip()

    # --- VERIFICAÇÃO DE DUPLICIDADE ---
    existing_vehicle = db.query(Vehicle).filter(Vehicle.plate == plate_str).first()
    if existing_vehicle:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A placa '{plate_str}' já está cadastrada."
        )

    # Veículo nasce sem situação; a primeira vem por uma transição
    new_vehicle = Vehicle(plate=plate_str, model=payload.model.strip())
    try:
        db.add(new_vehicle)
        db.commit()
        db.refresh(new_vehicle)
    except Exception:
        db.rollback()
        logger.exception("Erro ao criar veículo %s", plate_str)
        raise

    logger.info("Veículo %s criado (id %s)", new_vehicle.plate, new_vehicle.id)
    return _to_out(new_vehicle)


@router.get("/{vehicle_id}", name="show_vehicle")
def show_vehicle(request: Request, vehicle_id: str, db: Session = Depends(get_db)):
    get_current_user(request)

    vehicle = db.query(Vehicle).options(
        joinedload(Vehicle.status_type)
    ).filter(Vehicle.id == parse_vehicle_id(vehicle_id)).first()

    if not vehicle:
        raise NotFoundError("Veículo não encontrado")

    return _to_out(vehicle)
