import asyncio
import time

import structlog

from shared.observability import (
    order_persist_failures_total,
    order_processed_total,
    order_processing_duration_seconds,
)
from .assembler import OrderAssembler
from .errors import InvalidOrderData, PersistenceFailed, RecordExists, RecordStoreError
from .repository import RecordStore
from .schemas import OrderCreate, OrderRecord
from .sequence import SequenceGenerator

logger = structlog.get_logger(__name__)

MAX_PERSIST_ATTEMPTS = 3


class OrderService:
    """
    Issues an order number, builds the record and stores it.

    Per request: generating -> assembling -> persisting (attempt 1..N) ->
    succeeded | failed. A failed write never hands its number back; the gap
    in the sequence is accepted, a duplicate is not.
    """

    def __init__(
        self,
        generator: SequenceGenerator,
        store: RecordStore,
        max_attempts: int = MAX_PERSIST_ATTEMPTS,
        backoff_seconds: float = 0.0,
    ):
        self.generator = generator
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    async def process(self, customer_id: int, data: OrderCreate) -> str:
        started = time.perf_counter()
        log = logger.bind(customer_id=customer_id)
        try:
            log.debug("order_state", state="generating")
            order_number = await self.generator.next(customer_id)
            log = log.bind(order_number=order_number)

            log.debug("order_state", state="assembling")
            record = OrderAssembler.build(
                order_number,
                customer_id,
                data.name,
                data.email,
                data.address,
                data.payment_type,
                data.items,
            )

            await self._persist(record, log)
        except InvalidOrderData as e:
            log.info("order_rejected", error=str(e))
            order_processed_total.labels(status="invalid").inc()
            raise
        except PersistenceFailed:
            order_processed_total.labels(status="persistence_failed").inc()
            raise
        finally:
            order_processing_duration_seconds.observe(time.perf_counter() - started)

        order_processed_total.labels(status="success").inc()
        log.info("order_processed", state="succeeded")
        return order_number

    async def _persist(self, record: OrderRecord, log) -> None:
        attempts = 0
        while True:
            attempts += 1
            log.debug("order_state", state="persisting", attempt=attempts)
            try:
                await self.store.put(record)
                return
            except RecordExists as e:
                # Someone else already holds this number; writing again cannot help
                order_persist_failures_total.labels(reason="exists").inc()
                log.error("order_number_collision", attempt=attempts, error=str(e))
                raise PersistenceFailed(record.order_number, attempts, e) from e
            except RecordStoreError as e:
                order_persist_failures_total.labels(reason="transient").inc()
                log.warning("order_save_failed", attempt=attempts, max_attempts=self.max_attempts, error=str(e))
                if attempts >= self.max_attempts:
                    log.error("order_persistence_exhausted", state="failed", attempts=attempts)
                    raise PersistenceFailed(record.order_number, attempts, e) from e
                if self.backoff_seconds:
                    await asyncio.sleep(self.backoff_seconds)
