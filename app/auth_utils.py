import logging

from passlib.context import CryptContext
from fastapi import Request, HTTPException
from sqlalchemy.orm import Session
from starlette import status

from app import config
from app.database_models import StatusType, User

logger = logging.getLogger(__name__)

# Configura o algoritmo de hashing
pwd_context = CryptContext(schemes=["scrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica se a senha pura corresponde ao hash salvo."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Gera um hash para a senha pura."""
    return pwd_context.hash(password)


def create_admin_user_if_not_exists(session_factory):
    """Cria o usuário administrador padrão se ele não existir."""
    db = session_factory()
    try:
        admin_user = db.query(User).filter(User.username == config.ADMIN_USERNAME).first()

        if admin_user is None:
            new_admin = User(
                username=config.ADMIN_USERNAME,
                password_hash=get_password_hash(config.ADMIN_PASSWORD),
                full_name="Administrador do Sistema"
            )
            db.add(new_admin)
            db.commit()
            logger.info("Usuário '%s' padrão criado com sucesso.", config.ADMIN_USERNAME)
        else:
            logger.debug("Usuário '%s' já existe.", config.ADMIN_USERNAME)
    finally:
        db.close()


def seed_status_types_if_empty(session_factory):
    """Cadastra os tipos de situação padrão quando a tabela está vazia."""
    db = session_factory()
    try:
        if db.query(StatusType).first() is None:
            for name in config.DEFAULT_STATUS_TYPES:
                db.add(StatusType(name=name))
            db.commit()
            logger.info("Tipos de situação padrão criados: %s", ", ".join(config.DEFAULT_STATUS_TYPES))
    finally:
        db.close()


def get_current_user(request: Request) -> str:
    """Verifica se o usuário está na sessão. Se não, responde 401."""
    username = request.session.get("user")
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login necessário."
        )
    return username


def get_acting_user(request: Request, db: Session) -> User:
    """Usuário logado, carregado do banco (o id é gravado como autor das mudanças)."""
    username = get_current_user(request)
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        # Sessão aponta para um usuário que não existe mais
        request.session.clear()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login necessário.")
    return user
