"""
Shared Flask extension instances.

Created here, bound to the app in create_app(), so blueprints can decorate
routes without importing the app module.
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Per-client limits keyed on remote address. Storage, default limits and the
# on/off switch come from RATELIMIT_* config; the identify and chat routes add
# tighter limits because each request costs a model call.
limiter = Limiter(key_func=get_remote_address)
