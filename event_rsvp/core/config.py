import os

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./event_rsvp.db")

# Redis configuration
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Identity (bearer tokens are issued elsewhere, we only verify them)
JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))

# Stored width of user identities (token subjects)
USER_ID_MAX_LENGTH = 64

# Per-event locking and retry of contended operations
EVENT_LOCK_TIMEOUT = float(os.getenv("EVENT_LOCK_TIMEOUT", "10"))
EVENT_LOCK_BLOCKING_TIMEOUT = float(os.getenv("EVENT_LOCK_BLOCKING_TIMEOUT", "5"))
RESERVATION_MAX_ATTEMPTS = int(os.getenv("RESERVATION_MAX_ATTEMPTS", "3"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def get_database_url():
    return DATABASE_URL


def get_redis_url():
    return REDIS_URL
