import os
import re

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is not set")

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

RABBIT_URL = os.getenv("RABBIT_URL")  # optional, notifications are dropped without it
REDIS_URL = os.getenv("REDIS_URL") or "redis://localhost:6379/0"

WHATSAPP_API_TOKEN = os.getenv("WHATSAPP_API_TOKEN")
WHATSAPP_PHONE_ID = os.getenv("WHATSAPP_PHONE_ID")
WHATSAPP_API_BASE = os.getenv("WHATSAPP_API_BASE") or "https://graph.facebook.com/v17.0"

STORAGE_URL = os.getenv("STORAGE_URL")
STORAGE_KEY = os.getenv("STORAGE_KEY")
RECEIPTS_BUCKET = os.getenv("RECEIPTS_BUCKET") or "payment_uploads"

SETTINGS_TTL_SECONDS = int(os.getenv("SETTINGS_TTL_SECONDS") or "300")
SETTINGS_TIMEOUT_SECONDS = float(os.getenv("SETTINGS_TIMEOUT_SECONDS") or "5")

EXPIRY_SWEEP_ENABLED = (os.getenv("EXPIRY_SWEEP_ENABLED") or "false").lower() == "true"
EXPIRY_SWEEP_INTERVAL_SECONDS = float(os.getenv("EXPIRY_SWEEP_INTERVAL_SECONDS") or "3600")

SCREENSHOT_RETENTION_DAYS = int(os.getenv("SCREENSHOT_RETENTION_DAYS") or "3")

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"

# comma separated, e.g. "+919876543210,+919123456780"
ADMIN_PHONES = {
    re.sub(r"[^\d+]", "", p)
    for p in (os.getenv("ADMIN_PHONES") or "").split(",")
    if p.strip()
}
