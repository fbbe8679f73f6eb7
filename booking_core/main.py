import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import SessionLocal, init_db
from .redis_client import redis_client
from .routers import bookings, slots

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    yield


app = FastAPI(title="Booking API", lifespan=lifespan)

app.include_router(slots.router)
app.include_router(bookings.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except RedisError as e:
        logger.warning(f"Redis health check failed: {e}")
        redis_ok = False

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        db_ok = False
    finally:
        db.close()

    return {"redis": redis_ok, "database": db_ok}
