from typing import Optional

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session
from starlette import status

from app.database import get_db, get_session_factory
from app.auth_utils import get_acting_user, get_current_user
from app.core.status_query import StatusQueryService
from app.core.status_transition import TransitionEngine
from app.models.status import NewStatus, StatusHistoryPage, StatusRecord

# Rotas aninhadas em /vehicles/{vehicle_id}
router = APIRouter(prefix="/vehicles", tags=["statuses"])


def get_transition_engine(session_factory=Depends(get_session_factory)) -> TransitionEngine:
    return TransitionEngine(session_factory)


def get_status_query(session_factory=Depends(get_session_factory)) -> StatusQueryService:
    return StatusQueryService(session_factory)


@router.post(
    "/{vehicle_id}/statuses",
    name="create_vehicle_status",
    response_model=StatusRecord,
    status_code=status.HTTP_201_CREATED,
)
def create_vehicle_status(
    request: Request,
    vehicle_id: str,
    payload: NewStatus,
    db: Session = Depends(get_db),
    engine: TransitionEngine = Depends(get_transition_engine),
):
    # O id fica como texto: quem valida é o motor (erro InvalidInput)
    user = get_acting_user(request, db)
    user_id = user.id
    # Libera a conexão de leitura antes da transação de escrita
    db.close()
    return engine.propose(vehicle_id, user_id, payload)


@router.get(
    "/{vehicle_id}/statuses",
    name="list_vehicle_statuses",
    response_model=StatusHistoryPage,
)
def list_vehicle_statuses(
    request: Request,
    vehicle_id: str,
    page: Optional[str] = None,
    per_page: Optional[str] = None,
    query: StatusQueryService = Depends(get_status_query),
):
    get_current_user(request)
    return query.list(vehicle_id, page, per_page)
