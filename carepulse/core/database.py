from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator, Optional
import logging
import redis
from .config import settings

logger = logging.getLogger(__name__)

db_url = settings.get_database_url

if db_url.startswith("sqlite"):
    # SQLite is only used for tests and local runs; the app serves requests
    # from a threadpool, so connections must not be pinned to one thread
    engine = create_engine(db_url, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        db_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Redis is optional; rate limiting and shared submission locks need it
redis_client: Optional[redis.Redis] = None
if settings.REDIS_URL:
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
else:
    logger.info("REDIS_URL not configured, using in-process submission locks")

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Redis dependency
def get_redis() -> Optional[redis.Redis]:
    """Get Redis client, or None when Redis is not configured."""
    return redis_client

# Database initialization
def init_db():
    """Initialize database tables."""
    # Models register themselves on Base.metadata when imported
    from ..models import appointment, patient, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
