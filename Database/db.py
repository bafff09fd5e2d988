from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import (
    DB_CONNECT_TIMEOUT,
    DB_STATEMENT_TIMEOUT_MS,
    MANAGED_DB_HOST_MARKER,
)


def _connect_args(database_url: str) -> dict:
    """
    Monta os argumentos de conexão do driver conforme o banco
    """
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}

    args = {
        "connect_timeout": DB_CONNECT_TIMEOUT,
        "options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
    }
    # TLS sem verificação de certificado apenas no host gerenciado
    if MANAGED_DB_HOST_MARKER and MANAGED_DB_HOST_MARKER in database_url:
        args["sslmode"] = "require"
    return args


def create_db_engine(database_url: str) -> Engine:
    """
    Cria o pool de conexões compartilhado pelo processo inteiro
    """
    kwargs = {"connect_args": _connect_args(database_url), "pool_pre_ping": True}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """Sessão por requisição, vinda da fábrica guardada em app.state"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
