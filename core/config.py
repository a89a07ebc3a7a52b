# core/config.py
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///orderlink.db")

# Order service (REST + realtime channel)
ORDER_SERVICE_URL = os.getenv("ORDER_SERVICE_URL", "http://localhost:3003")
ORDER_WS_URL = os.getenv("ORDER_WS_URL", ORDER_SERVICE_URL)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))

# socket.io reconnection is handled by the library; these only tune it
RECONNECT_ATTEMPTS = int(os.getenv("RECONNECT_ATTEMPTS", "5"))
RECONNECT_DELAY = float(os.getenv("RECONNECT_DELAY", "1"))
RECONNECT_DELAY_MAX = float(os.getenv("RECONNECT_DELAY_MAX", "5"))

# Local caches
RECOMMENDATION_TTL_MINUTES = int(os.getenv("RECOMMENDATION_TTL_MINUTES", "30"))
CACHE_DEFAULT_TTL_SECONDS = int(os.getenv("CACHE_DEFAULT_TTL_SECONDS", "300"))
NOTIFICATION_LIMIT = int(os.getenv("NOTIFICATION_LIMIT", "10"))

# Session principal (used by main.py)
AUTH_TOKEN = os.getenv("AUTH_TOKEN")
PRINCIPAL_ID = os.getenv("PRINCIPAL_ID")
PRINCIPAL_TYPE = os.getenv("PRINCIPAL_TYPE", "customer")
