"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_BUSINESS_TIMEZONE = "+08:00"

# Check-in is accepted from start-10m up to start+15m (both inclusive).
CHECK_IN_OPENS_MINUTES = 10
CHECK_IN_CLOSES_MINUTES = 15

# Sweeper thresholds: no-show is anchored on start, finalize on end.
NO_SHOW_AFTER_MINUTES = 15
FINALIZE_AFTER_MINUTES = 10

SWEEPER_INTERVAL_MINUTES = 5
SWEEPER_MAX_WRITES_PER_BATCH = 500

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_REPORT_DAYS = 7

NO_SHOW_JOB_ID = "sweeper_no_show"
FINALIZE_JOB_ID = "sweeper_finalize"
