from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from hottopic.config import settings

db_url = settings.DB_URL
is_postgres = db_url.startswith("postgresql")

if is_postgres:
    engine = create_engine(
        db_url,
        future=True,
        echo=False,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
else:
    # SQLite (local development)
    engine = create_engine(
        db_url,
        future=True,
        echo=False,
        connect_args={"check_same_thread": False} if "sqlite" in db_url else {},
    )

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)

Base = declarative_base()


def init_db(bind=None):
    """Create all tables on the given engine (defaults to the configured one)."""
    # Register the mapped classes before create_all
    from hottopic.db import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
