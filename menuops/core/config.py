import os

from dotenv import load_dotenv

# .env at the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./menuops.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Import engine
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR").strip().upper() or "INR"
IMPORT_LOCK_TIMEOUT_SECONDS = float(os.getenv("IMPORT_LOCK_TIMEOUT_SECONDS", "0"))
IMPORT_MAX_PAYLOAD_BYTES = int(os.getenv("IMPORT_MAX_PAYLOAD_BYTES", str(10 * 1024 * 1024)))

# Actor recorded in the audit log when no admin session is present (CLI runs).
SYSTEM_ACTOR_ID = os.getenv("SYSTEM_ACTOR_ID", "system").strip() or "system"
SYSTEM_ACTOR_NAME = os.getenv("SYSTEM_ACTOR_NAME", "System Import").strip() or "System Import"

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
