from fastapi import APIRouter, Request, Depends, HTTPException
from sqlalchemy.orm import Session
from starlette import status

from app.database import get_db
from app.database_models import StatusType
from app.auth_utils import get_current_user
from app.models.status_type import StatusType as StatusTypeOut, StatusTypeCreate

router = APIRouter(prefix="/status-types", tags=["status-types"])


@router.get("/", name="list_status_types")
def list_status_types(request: Request, db: Session = Depends(get_db)):
    get_current_user(request)
    types = db.query(StatusType).order_by(StatusType.name).all()
    return [StatusTypeOut.model_validate(t) for t in types]


@router.post("/", name="create_status_type", status_code=status.HTTP_201_CREATED)
def create_status_type(request: Request, payload: StatusTypeCreate, db: Session = Depends(get_db)):
    get_current_user(request)

    name = payload.name.strip()
    if db.query(StatusType).filter(StatusType.name == name).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Tipo de situação '{name}' já existe."
        )

    new_type = StatusType(name=name, specification=payload.specification)
    db.add(new_type)
    db.commit()
    db.refresh(new_type)
    return StatusTypeOut.model_validate(new_type)
