import os

from dotenv import load_dotenv  # type: ignore

load_dotenv()


def _int_env(name, default):
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


# ==========================
# App Configuration
# ==========================
class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///database.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # change in production

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Applied to GST bills that arrive without a gstPercentage
    DEFAULT_GST_PERCENTAGE = _int_env("DEFAULT_GST_PERCENTAGE", 18)
    LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 5)
    RECENT_BILLS_LIMIT = _int_env("RECENT_BILLS_LIMIT", 5)
