# ------------------------------------------
# Health check route
# - /health : Service status plus a trivial database round trip
# ------------------------------------------

from datetime import datetime, timezone
import logging
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import get_settings
from app.db.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

@router.get("/health")
def health(db: Session = Depends(get_db)):
    database = "connected"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {type(e).__name__}")
        database = "disconnected"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": get_settings().ENVIRONMENT,
        "database": database,
    }
