"""Health and ready endpoints."""
import redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from botruntime.deps import get_db
from botruntime.config import get_settings

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok", "service": "botruntime"}


@router.get("/ready")
def ready(db: Session = Depends(get_db)):
    s = get_settings()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return JSONResponse({"status": "error", "detail": str(e)}, status_code=503)

    if s.conversation_lock_enabled:
        try:
            r = redis.Redis(host=s.redis_host, port=s.redis_port)
            r.ping()
        except redis.RedisError as e:
            return JSONResponse({"status": "error", "detail": f"redis: {e}"}, status_code=503)

    return {"status": "ok"}
