from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from config import settings
import logging

# Configure logger
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def get_db_connection(url: str | None = None):
    """Create and return database engine."""
    url = url or settings.database_url()
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = get_db_connection()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Ensure required tables exist, create if missing."""
    from models import Base

    bind = bind or engine
    existing_tables = set(inspect(bind).get_table_names())
    missing = [name for name in Base.metadata.tables if name not in existing_tables]
    if missing:
        logger.info(f"Creating missing tables: {', '.join(sorted(missing))}")
    Base.metadata.create_all(bind=bind)
    return missing
