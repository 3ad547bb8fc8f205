"""
Engine and session wiring for the ledger store

Одна пара engine / sessionmaker на процесс. Каждый use case получает
Session снаружи и сам фиксирует свой unit of work через EntityStore.
"""
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from ledger.config import Settings, get_settings


class Base(DeclarativeBase):
    """Declarative base for accounts / pockets / sub_pockets / movements"""
    pass


_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def build_engine(settings: Settings) -> Engine:
    """
    Engine по настройкам

    SQLite (локальные прогоны, maintenance-скрипты) не проверяет
    соединения из пула; для Postgres включён pool_pre_ping.
    """
    url = settings.get_sqlalchemy_url()
    if url.startswith("sqlite"):
        return create_engine(url, echo=settings.DEBUG)
    return create_engine(url, pool_pre_ping=True, echo=settings.DEBUG)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings())
    return _engine


def get_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        # autoflush выключен: EntityStore сам делает flush после каждой записи
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Iterator[Session]:
    """
    Генератор сессии: открывает session и гарантированно закрывает её

    Usage:
        db = next(get_db())
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Сессия для скриптов: незафиксированное при выходе откатывается

    Usage:
        with session_scope() as db:
            recompute_all(EntityStore(db))
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection(settings: Optional[Settings] = None) -> None:
    """
    Проверка доступности PostgreSQL (raw psycopg), до открытия ORM-сессии

    Raises:
        psycopg.OperationalError: если БД недоступна
    """
    settings = settings or get_settings()
    with psycopg.connect(settings.DATABASE_URL, connect_timeout=3) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
