import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from starlette import status as status_codes

# --- Configuração e banco de dados ---
from app import config
from app.database import engine, Base, SessionLocal
from app import database_models  # noqa: F401  (registra as tabelas no Base)
from app.auth_utils import create_admin_user_if_not_exists, seed_status_types_if_empty
from app.errors import (
    ConflictError,
    InvalidInputError,
    InvalidOdometerError,
    NotFoundError,
    TransitionFailedError,
    VehicleStatusError,
)
#----------------------------------------------------------
from app.routers import auth
from app.routers.status_types import router as status_types_router
from app.routers.statuses import router as statuses_router
from app.routers.vehicles import router as vehicles_router
# ---------------------------------

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Código HTTP de cada erro do domínio.
# InvalidOdometer usa 422 como os erros de schema do FastAPI; o corpo dos
# erros do domínio sempre traz "kind" (e "reason"), o de schema não.
ERROR_STATUS = {
    InvalidInputError: status_codes.HTTP_400_BAD_REQUEST,
    NotFoundError: status_codes.HTTP_404_NOT_FOUND,
    ConflictError: status_codes.HTTP_409_CONFLICT,
    InvalidOdometerError: 422,
    TransitionFailedError: status_codes.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Cria as tabelas e os dados iniciais
    Base.metadata.create_all(bind=engine)
    create_admin_user_if_not_exists(SessionLocal)
    seed_status_types_if_empty(SessionLocal)
    logger.info("Banco pronto em %s", engine.url.render_as_string(hide_password=True))
    yield


# Cria a instância principal do FastAPI
app = FastAPI(title="Frota - Situação de Veículos", lifespan=lifespan)

app.add_middleware(
    SessionMiddleware,
    secret_key=config.SECRET_KEY,
    https_only=config.HTTPS_ONLY
)


@app.exception_handler(VehicleStatusError)
async def vehicle_status_error_handler(request: Request, exc: VehicleStatusError):
    body = {"detail": exc.message, "kind": exc.kind}
    if isinstance(exc, InvalidOdometerError):
        body["reason"] = exc.reason
    return JSONResponse(
        status_code=ERROR_STATUS.get(type(exc), status_codes.HTTP_400_BAD_REQUEST),
        content=body,
    )


# Inclui os roteadores (ordem não importa)
app.include_router(auth.router)
app.include_router(status_types_router)
app.include_router(vehicles_router)
app.include_router(statuses_router)


@app.get("/status")
def status(request: Request):
    return {
        "status": "ok",
        "host": request.client.host,
        "port": request.url.port or 80,
        "scheme": request.url.scheme,
        "path": request.url.path,
    }


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
