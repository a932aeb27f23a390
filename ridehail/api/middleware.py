"""Rate limiting shared by all routers (keyed on client address).

Each route applies ``settings.rate_limit`` through ``@limiter.limit``.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
