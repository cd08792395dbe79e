from prometheus_client import Counter, Histogram

# Business Metrics
order_processed_total = Counter(
    "order_processed_total",
    "Total orders processed",
    ["status"] # Labels: 'success', 'invalid', 'persistence_failed'
)

order_processing_duration_seconds = Histogram(
    "order_processing_duration_seconds",
    "End-to-end order processing duration in seconds"
)

order_persist_failures_total = Counter(
    "order_persist_failures_total",
    "Failed order record writes (each retry attempt counts once)",
    ["reason"] # Labels: 'transient', 'exists'
)

order_sequence_fallback_scans_total = Counter(
    "order_sequence_fallback_scans_total",
    "Running-number lookups served by scanning the record store",
    ["outcome"] # Labels: 'found', 'empty', 'error'
)

order_sequence_cache_errors_total = Counter(
    "order_sequence_cache_errors_total",
    "Sequence cache operations that failed",
    ["operation"] # Labels: 'get', 'set', 'seed', 'incr'
)
