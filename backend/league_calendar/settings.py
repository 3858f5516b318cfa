"""
Calendar engine settings read from the environment.

Values are read once at import time; `.env` files are honoured through python-dotenv.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# A generation flag older than this is treated as left behind by a crashed worker
CALENDAR_LOCK_STALE_SECONDS = int(os.getenv("CALENDAR_LOCK_STALE_SECONDS", "600"))

# Soft limits: exceeding them only adds warnings to the run
CALENDAR_TEAM_COUNT_WARNING = int(os.getenv("CALENDAR_TEAM_COUNT_WARNING", "50"))
CALENDAR_VUELTAS_WARNING = int(os.getenv("CALENDAR_VUELTAS_WARNING", "4"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
