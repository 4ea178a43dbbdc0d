from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"sslmode": "require"},
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=1800,
        )

    # In-memory SQLite lives on a single connection; share it across sessions.
    if database_url in {"sqlite://", "sqlite:///:memory:"}:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
            poolclass=StaticPool,
        )
    return create_engine(database_url, connect_args={"check_same_thread": False}, echo=echo)


engine = build_engine(settings.database_url, echo=settings.debug_sql)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
