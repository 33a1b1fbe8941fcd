from fastapi import APIRouter, Request, Form, Depends, HTTPException
from sqlalchemy.orm import Session
from starlette import status

from app.database import get_db
from app.database_models import User
from app.auth_utils import verify_password, get_acting_user

router = APIRouter(tags=["auth"])


# --- ROTA 1: PROCESSAR O LOGIN ---
@router.post("/login", name="login_process")
def login_process(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    """Valida usuário e senha e guarda o usuário na sessão."""
    user = db.query(User).filter(User.username == username).first()

    if user and verify_password(password, user.password_hash):
        request.session["user"] = user.username
        return {"username": user.username, "full_name": user.full_name}

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Usuário ou senha inválidos."
    )


# --- ROTA 2: USUÁRIO LOGADO ---
@router.get("/me", name="current_user")
def current_user(request: Request, db: Session = Depends(get_db)):
    user = get_acting_user(request, db)
    return {"id": user.id, "username": user.username, "full_name": user.full_name}


# --- ROTA 3: LOGOUT ---
@router.get("/logout", name="logout")
def logout(request: Request):
    """Limpa a sessão do usuário."""
    request.session.clear()
    return {"detail": "Sessão encerrada."}
