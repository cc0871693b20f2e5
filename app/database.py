from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import QueuePool
from app.config import settings
import logging

logger = logging.getLogger(__name__)


# ─── Engine ────────────────────────────────────────────────────────────────────
def _engine_options() -> dict:
    # SQLite (local runs, tests) cannot take QueuePool sizing arguments
    if settings.DATABASE_URL.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "echo": settings.DATABASE_ECHO,
        }
    return {
        "poolclass": QueuePool,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_pre_ping": True,   # Detect stale connections before using them
        "echo": settings.DATABASE_ECHO,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options())


# ─── Session Factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,      # Avoid DetachedInstanceError after commit
)


# ─── Base Model ────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.
    All models in app/models/ should inherit from this class.
    """
    pass


# ─── Dependency Injection ──────────────────────────────────────────────────────
def get_db():
    """
    FastAPI dependency that provides a database session per request.
    Automatically closes session after request completes.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# ─── Health Check ──────────────────────────────────────────────────────────────
def check_db_connection() -> bool:
    """Verify database is reachable. Used at startup."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
