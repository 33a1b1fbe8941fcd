"""
Configuração da aplicação (lida do ambiente, com valores padrão).
"""
import os
import sys
from pathlib import Path

# --- LÓGICA DE CAMINHO ---
# (Garante que o banco seja criado na raiz do projeto, inclusive no PyInstaller)
if getattr(sys, 'frozen', False):
    BASE_DIR = Path(sys._MEIPASS)
else:
    BASE_DIR = Path(".")
# -------------------------


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# --- Banco de dados ---
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{BASE_DIR / 'frota.db'}",
)

# Tempo máximo (segundos) esperando o lock do veículo numa transição
LOCK_TIMEOUT_SECONDS = float(os.environ.get("LOCK_TIMEOUT_SECONDS", "5"))

# --- Sessão / autenticação ---
SECRET_KEY = os.environ.get("SECRET_KEY", "troque-esta-chave-em-producao")
HTTPS_ONLY = _env_bool("HTTPS_ONLY", False)
ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin")

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Tipos de situação criados no primeiro start (separados por vírgula)
DEFAULT_STATUS_TYPES = [
    name.strip()
    for name in os.environ.get(
        "DEFAULT_STATUS_TYPES", "Ativo,Em manutenção,Inativo"
    ).split(",")
    if name.strip()
]
