# cart_service/api/routers/health.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from cart_service.data.database import get_db
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def liveness():
    return {"status": "ok"}


@router.get("/ready")
def readiness(db: Database = Depends(get_db)):
    try:
        db.command("ping")
    except PyMongoError as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": str(e)})
    return {"status": "ok", "database": "ok"}
