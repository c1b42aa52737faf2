from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from socialshield.config import settings


def build_engine(database_url: str, timeout: int = settings.db_timeout):
    """Create an engine; SQLite gets a busy timeout and cross-thread access."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
