import os


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Base directory of the backend (one level above this `vybraa` package)
    BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    INSTANCE_DIR = os.path.join(BACKEND_DIR, "instance")

    ENV = (os.getenv("VYBRAA_ENV", "dev") or "dev").strip().lower()
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    _default_sqlite_path = os.path.join(INSTANCE_DIR, "vybraa.db").replace("\\", "/")
    _db_url = os.getenv("DATABASE_URL", f"sqlite:///{_default_sqlite_path}")
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_db_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS: comma-separated origins for web builds
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Admin endpoints (reconcile triggers, wallet earnings)
    ADMIN_API_TOKEN = (os.getenv("ADMIN_API_TOKEN") or "").strip()

    # Money
    BASE_CURRENCY = (os.getenv("BASE_CURRENCY", "USD") or "USD").strip().upper()
    FEE_FALLBACK_PERCENT = os.getenv("FEE_FALLBACK_PERCENT", "10")

    # Gateways
    PAYSTACK_SECRET_KEY = (os.getenv("PAYSTACK_SECRET_KEY") or "").strip()
    PAYSTACK_URL = os.getenv("PAYSTACK_URL", "https://api.paystack.co")
    # where Paystack sends the fan after checkout; a request body may override it
    PAYMENT_CALLBACK_URL = (os.getenv("PAYMENT_CALLBACK_URL") or "").strip()
    PAYMENT_CANCEL_URL = (os.getenv("PAYMENT_CANCEL_URL") or "").strip()
    FLUTTERWAVE_SECRET_KEY = (os.getenv("FLUTTERWAVE_SECRET_KEY") or "").strip()
    FLUTTERWAVE_SECRET_HASH = (os.getenv("FLUTTERWAVE_SECRET_HASH") or "").strip()
    FLUTTERWAVE_V3_URL = os.getenv("FLUTTERWAVE_V3_URL", "https://api.flutterwave.com/v3")
    GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "20"))

    # Reconciliation
    ENABLE_SCHEDULER = _flag("ENABLE_SCHEDULER")
    STALE_PENDING_HOURS = int(os.getenv("STALE_PENDING_HOURS", "24"))
    UNPAID_REQUEST_HOURS = int(os.getenv("UNPAID_REQUEST_HOURS", "48"))
    DECLINE_REQUEST_ON_PAYMENT_FAILURE = _flag("DECLINE_REQUEST_ON_PAYMENT_FAILURE")
