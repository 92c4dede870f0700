"""
config.py — Environment Configuration

All runtime settings are read from environment variables once, at import time,
with defaults suitable for local development. Nothing here opens connections;
the database engine and the message broker client are built explicitly by the
application at startup.
"""

import os

# Persistence
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./preorder.db")
DATABASE_ECHO = os.environ.get("DATABASE_ECHO", "false").lower() == "true"

# Service fee policy: "per_store" charges SERVICE_FEE_AMOUNT for every distinct
# store in the order, "flat" charges it once for any non-empty order.
SERVICE_FEE_MODE = os.environ.get("SERVICE_FEE_MODE", "per_store")
SERVICE_FEE_AMOUNT = int(os.environ.get("SERVICE_FEE_AMOUNT", "25000"))

# Store notifications (RabbitMQ)
RABBITMQ_HOST = os.environ.get("RABBITMQ_HOST", "localhost")
RABBITMQ_USER = os.environ.get("RABBITMQ_USER", "guest")
RABBITMQ_PASSWORD = os.environ.get("RABBITMQ_PASSWORD", "guest")
STORE_NOTIFICATION_QUEUE = os.environ.get("STORE_NOTIFICATION_QUEUE", "store.orders.new")

# Logging
LOG_FILE = os.environ.get("LOG_FILE", "preorder_service.log")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# HTTP server
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8000"))
