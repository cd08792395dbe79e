from .setup import setup_observability
from .metrics import (
    order_processed_total,
    order_processing_duration_seconds,
    order_persist_failures_total,
    order_sequence_fallback_scans_total,
    order_sequence_cache_errors_total,
)
