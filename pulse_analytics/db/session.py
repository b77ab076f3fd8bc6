# pulse_analytics/db/session.py
import logging
import re

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy import text
from pulse_analytics.core.config import settings

logger = logging.getLogger(__name__)


def _mask(u: str) -> str:
    """Masks the password in the URL for safe logs"""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", u)


db_url = settings.db_url
logger.info("[DB] Using: %s", _mask(db_url))

if db_url.startswith("sqlite"):
    engine = create_engine(db_url, connect_args={"check_same_thread": False}, echo=False)
else:
    engine = create_engine(
        db_url,
        pool_size=5,              # 5 concurrent connections
        max_overflow=10,          # up to 15 on peaks
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=False,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> bool:
    """Checks that the connection works"""
    try:
        with engine.connect() as conn:
            row = conn.execute(text("SELECT 1")).fetchone()
            if row and row[0] == 1:
                logger.info("[DB] connection successful")
                return True
            return False
    except Exception as e:
        logger.error("[DB] connection failed: %s", e)
        return False
