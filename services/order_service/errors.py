"""
Error taxonomy for the order service.

Only these exceptions cross into the router. Raw redis, filesystem and
SQLAlchemy errors are converted at the adapter that touches them.
"""


class OrderServiceError(Exception):
    """Base class for every failure the order core reports."""


class CacheUnavailable(OrderServiceError):
    """The sequence cache could not be read or written. Non-fatal."""

    def __init__(self, scope, operation: str, cause: Exception | None = None):
        self.scope = scope
        self.operation = operation
        self.cause = cause
        super().__init__(f"Sequence cache {operation} failed for {scope}: {cause}")


class ScanFailed(OrderServiceError):
    """Record store enumeration failed during a fallback scan. Non-fatal."""

    def __init__(self, scope, cause: Exception | None = None):
        self.scope = scope
        self.cause = cause
        super().__init__(f"Fallback scan failed for {scope}: {cause}")


class InvalidOrderData(OrderServiceError):
    """The order payload cannot be turned into a record. Not retried."""


class PersistenceFailed(OrderServiceError):
    """The order record could not be written. The issued number is not reused."""

    def __init__(self, order_number: str, attempts: int, last_error: Exception):
        self.order_number = order_number
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to save order {order_number} after {attempts} attempts: {last_error}"
        )


# --- STORE-LEVEL ERRORS (raised by RecordStore adapters) ---

class RecordStoreError(OrderServiceError):
    """A write or enumeration against the record store failed. Transient."""


class RecordExists(RecordStoreError):
    """A record already exists under this order number. Never overwritten."""

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order {order_number} already exists")
