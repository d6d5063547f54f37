import os
from dotenv import load_dotenv

from tracker.errors import ConfigurationError

# Load variables from .env into environment
load_dotenv()

# =========================
# HUBSTAFF CONFIG
# =========================
HUBSTAFF_ORG_ID = os.getenv("HUBSTAFF_ORG_ID")
HUBSTAFF_REFRESH_TOKEN = os.getenv("HUBSTAFF_REFRESH_TOKEN")
HUBSTAFF_CLIENT_ID = os.getenv("HUBSTAFF_CLIENT_ID")
HUBSTAFF_CLIENT_SECRET = os.getenv("HUBSTAFF_CLIENT_SECRET")
BASE_URL = "https://api.hubstaff.com/v2"
TOKEN_URL = "https://account.hubstaff.com/access_tokens"

HTTP_TIMEOUT_SECONDS = int(os.getenv("HUBSTAFF_HTTP_TIMEOUT_SECONDS", "30"))

# =========================
# DATABASE CONFIG (PostgreSQL)
# =========================
DATABASE_URL = os.getenv("DATABASE_URL")

# =========================
# CACHE / AGGREGATION CONFIG
# =========================
CACHE_TTL_SECONDS = int(os.getenv("HUBSTAFF_CACHE_TTL_SECONDS", str(30 * 60)))
CACHE_REFRESH_MINUTES = int(os.getenv("CACHE_REFRESH_MINUTES", "30"))
SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() in ("1", "true", "yes")

# /activities/daily accepts at most 31 days per query window
HISTORY_DAYS = int(os.getenv("HUBSTAFF_HISTORY_DAYS", "365"))
DAYS_PER_CHUNK = int(os.getenv("HUBSTAFF_DAYS_PER_CHUNK", "30"))
PROJECT_CHUNK_SIZE = 80
CHUNK_DELAY_SECONDS = float(os.getenv("HUBSTAFF_CHUNK_DELAY_SECONDS", "0.5"))

ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Asia/Kolkata")


# =========================
# VALIDATION (FAIL FAST ON USE)
# =========================
def require_database_url():
    if not DATABASE_URL:
        raise ConfigurationError("Missing required environment variables: DATABASE_URL")
