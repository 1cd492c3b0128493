import os
from dotenv import load_dotenv

load_dotenv()

# --- Database ---
# Default to local SQLite, but prefer environment variable (for hosted Postgres)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/budget.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# "sql" talks to DATABASE_URL through SQLAlchemy, "supabase" to PostgREST over HTTP
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sql").strip().lower()
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))

# --- Supabase Configuration ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

# --- Auth (tokens are issued by the hosted auth provider, we only verify them) ---
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "change-this-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

# --- Budget defaults ---
DEFAULT_MONTH_START_DAY = int(os.getenv("DEFAULT_MONTH_START_DAY", "1"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
DEFAULT_BUDGET_NAME = os.getenv("DEFAULT_BUDGET_NAME", "My Budget")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_WEBHOOK_URL = os.getenv("LOG_WEBHOOK_URL", "")
LOG_WEBHOOK_ALL = os.getenv("LOG_WEBHOOK_ALL", "false").lower() == "true"
LOG_WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("LOG_WEBHOOK_TIMEOUT_SECONDS", "5"))

# --- HTTP ---
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
