import os
from dotenv import load_dotenv

load_dotenv()

# --- ORDER NUMBERING ---
ORDER_TIMEZONE = os.getenv("ORDER_TIMEZONE", "Asia/Jakarta")

# locked | atomic | unsafe (see services/order_service/sequence.py)
SEQUENCE_MODE = os.getenv("SEQUENCE_MODE", "locked")

# Finished days fall out of Redis on their own; the store scan covers any later miss
SEQUENCE_TTL_SECONDS = int(os.getenv("SEQUENCE_TTL_SECONDS", str(2 * 24 * 3600)))

# --- PERSISTENCE ---
RECORD_STORE = os.getenv("RECORD_STORE", "sql")  # sql | file
ORDER_DIRECTORY = os.getenv("ORDER_DIRECTORY", "database/customer-order")
ORDER_PERSIST_ATTEMPTS = int(os.getenv("ORDER_PERSIST_ATTEMPTS", "3"))
ORDER_PERSIST_BACKOFF_SECONDS = float(os.getenv("ORDER_PERSIST_BACKOFF_SECONDS", "0.05"))

# --- OBSERVABILITY ---
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "true").lower() in ("1", "true", "yes")
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
