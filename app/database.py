from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from app import config

# 1. Engine de Conexão
# A string de conexão vem da configuração (DATABASE_URL)
SQLALCHEMY_DATABASE_URL = config.DATABASE_URL

# Opções de execução lidas no início de cada transação do SQLite
WRITE_LOCK_OPTION = "sqlite_begin_immediate"
LOCK_TIMEOUT_OPTION = "sqlite_lock_timeout"


def build_engine(url: str, lock_timeout: float = config.LOCK_TIMEOUT_SECONDS):
    """Cria a engine e, no SQLite, prepara o controle manual de transações."""
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        # 'check_same_thread' é necessário apenas para SQLite
        connect_args={"check_same_thread": False, "timeout": lock_timeout},
    )

    # O SQLite não tem lock de linha (FOR UPDATE é ignorado).
    # Desligamos o BEGIN automático do driver: leituras abrem com BEGIN comum
    # e só quem pede begin_write() abre com BEGIN IMMEDIATE, pegando o lock
    # de escrita antes de ler o "último km".
    # Em WAL, leitores abertos não bloqueiam o commit de quem escreve.
    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn):
        options = conn.get_execution_options()
        timeout = options.get(LOCK_TIMEOUT_OPTION, lock_timeout)
        conn.exec_driver_sql(f"PRAGMA busy_timeout = {int(timeout * 1000)}")
        if options.get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")

    return engine


def begin_write(db, lock_timeout=None):
    """
    Abre a transação da sessão já com o lock de escrita.

    No SQLite vira BEGIN IMMEDIATE, esperando no máximo ``lock_timeout``
    segundos; nos demais bancos as opções são ignoradas (o lock é de linha).
    Deve ser a primeira operação da transação.
    """
    options = {WRITE_LOCK_OPTION: True}
    if lock_timeout is not None:
        options[LOCK_TIMEOUT_OPTION] = lock_timeout
    return db.connection(execution_options=options)


engine = build_engine(SQLALCHEMY_DATABASE_URL)

# 2. Fábrica de Sessões
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 3. Base Declarativa
# Nossas classes de modelo herdarão desta
Base = declarative_base()


# --- Função helper para obter a sessão ---
def get_db():
    """Função helper para gerenciar a sessão do banco de dados."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    """Dependência que entrega a fábrica de sessões (sobrescrita nos testes)."""
    return SessionLocal
