# Entry point: uvicorn main:app
# The order service owns its startup (tables, Redis client), so it is served
# directly instead of being mounted under a cluster app.
from services.order_service.main import order_app

app = order_app
