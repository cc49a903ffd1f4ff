import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "room_reservation_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo rooms/users on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Business time rules (minutes). Windows are evaluated in BUSINESS_TIMEZONE.
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "+08:00")
CHECK_IN_OPENS_MINUTES = int(os.getenv("CHECK_IN_OPENS_MINUTES", "10"))
CHECK_IN_CLOSES_MINUTES = int(os.getenv("CHECK_IN_CLOSES_MINUTES", "15"))
NO_SHOW_AFTER_MINUTES = int(os.getenv("NO_SHOW_AFTER_MINUTES", "15"))
FINALIZE_AFTER_MINUTES = int(os.getenv("FINALIZE_AFTER_MINUTES", "10"))

SWEEPER_ENABLED = bool(int(os.getenv("SWEEPER_ENABLED", "1")))
SWEEPER_INTERVAL_MINUTES = int(os.getenv("SWEEPER_INTERVAL_MINUTES", "5"))
SWEEPER_MAX_WRITES_PER_BATCH = int(os.getenv("SWEEPER_MAX_WRITES_PER_BATCH", "500"))
