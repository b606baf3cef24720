"""
api/limiter.py -- The one slowapi Limiter shared by api/main.py and the auth router.

Counters live in process memory, so every route that applies @limiter.limit()
must use this instance for the limits to add up.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

# Applied to register, login and dashboard-login.
AUTH_RATE_LIMIT = get_settings().login_rate_limit
