import structlog
from fastapi import FastAPI

from shared.config import settings
from shared.config.cache import create_redis_client
from shared.config.database import AsyncSessionLocal, Base, engine
from shared.observability import setup_observability
from .cache import RedisSequenceCache
from .models import CustomerOrder  # noqa: F401  Import to register with Base
from .repository import FileRecordStore, SqlRecordStore
from .router import router, public_router
from .sequence import FallbackScanner, SequenceGenerator
from .service import OrderService

logger = structlog.get_logger(__name__)

order_app = FastAPI(title="Order Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(order_app, "order_service")

order_app.include_router(public_router)
order_app.include_router(router)


def build_order_service(redis_client) -> OrderService:
    if settings.RECORD_STORE == "file":
        store = FileRecordStore(settings.ORDER_DIRECTORY)
    else:
        store = SqlRecordStore(AsyncSessionLocal)

    generator = SequenceGenerator(
        RedisSequenceCache(redis_client, ttl_seconds=settings.SEQUENCE_TTL_SECONDS),
        FallbackScanner(store),
        timezone=settings.ORDER_TIMEZONE,
        mode=settings.SEQUENCE_MODE,
    )
    return OrderService(
        generator,
        store,
        max_attempts=settings.ORDER_PERSIST_ATTEMPTS,
        backoff_seconds=settings.ORDER_PERSIST_BACKOFF_SECONDS,
    )


@order_app.on_event("startup")
async def startup_event():
    if settings.RECORD_STORE != "file":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    order_app.state.redis = create_redis_client()
    order_app.state.order_service = build_order_service(order_app.state.redis)
    logger.info(
        "order_service_started",
        record_store=settings.RECORD_STORE,
        sequence_mode=settings.SEQUENCE_MODE,
        timezone=settings.ORDER_TIMEZONE,
    )


@order_app.on_event("shutdown")
async def shutdown_event():
    await order_app.state.redis.aclose()
    await engine.dispose()
