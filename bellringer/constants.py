import os
from zoneinfo import ZoneInfo


SCHOOL_TZ = ZoneInfo(os.getenv("BELL_TZ", "Europe/Vilnius"))

# Trigger loop timing
TICK_INTERVAL_SECONDS = 60  # How often the bell loop polls the clock
TOLERANCE_SECONDS = 30  # +/- window around "now" used to match call times

# Minutes before a lesson starts that the preliminary bell rings. 0 disables it.
PRELIMINARY_CALL_LEAD_MINUTES = 2

# Schedule bounds (minutes)
LESSON_DURATION_MIN = 15
LESSON_DURATION_MAX = 90
BREAK_DURATION_MIN = 5
BREAK_DURATION_MAX = 30

DEFAULT_LESSON_DURATION = 45
DEFAULT_BREAK_DURATION = 10

# Job naming constants
BELL_TICK_JOB_ID = "bell_tick"
DAILY_RESET_JOB_ID = "bell_daily_reset"

# Calendar colours
LESSON_COLOR = "#3788d8"
BREAK_COLOR = "#28a745"
