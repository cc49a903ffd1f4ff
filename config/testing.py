import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "room_reservation_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

BUSINESS_TIMEZONE = "+08:00"
CHECK_IN_OPENS_MINUTES = 10
CHECK_IN_CLOSES_MINUTES = 15
NO_SHOW_AFTER_MINUTES = 15
FINALIZE_AFTER_MINUTES = 10

# Tests drive the sweeps explicitly.
SWEEPER_ENABLED = False
SWEEPER_INTERVAL_MINUTES = 5
SWEEPER_MAX_WRITES_PER_BATCH = 500
