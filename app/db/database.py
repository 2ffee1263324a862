# ------------------------------------------
# Database configuration for the application
# - Reads DATABASE_URL from settings (.env supported)
# - Creates SQLAlchemy engine & session factory
# - Provides get_db() for FastAPI dependency injection
# ------------------------------------------

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import get_settings

logger = logging.getLogger(__name__)

DATABASE_URL = get_settings().DATABASE_URL

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    from app import models  # noqa: F401  registers tables on Base.metadata
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")
