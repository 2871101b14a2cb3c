import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from learnify import config
from learnify.core.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Liveness plus a database ping.
    503 when the store does not answer.
    """
    record = {
        "timestamp": datetime.utcnow().isoformat(),
        "status": {"api": "UP"},
    }

    try:
        await db.command("ping")
        record["status"]["database"] = "UP"
    except PyMongoError as e:
        logger.error("Database ping failed: %s", e)
        record["status"]["database"] = "DOWN"
        return JSONResponse(status_code=503, content={"success": False, **record})

    return {"success": True, **record}


@router.get("/version")
async def version():
    return {"version": config.VERSION}
