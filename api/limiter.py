"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (mounted as middleware and stored on app.state) and
by api/routes/v1/auth.py (the @limiter.limit() on login). Both must see the
same instance, otherwise each would count requests in its own store.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
