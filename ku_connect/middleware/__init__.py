"""
Request pipeline - authentication, role/ownership authorization, rate
limiting and validation, composed per route in a declared order.
"""

from ku_connect.middleware.context import RequestContext
from ku_connect.middleware.stages import Authenticate, Authorize, RateLimit, Validate
from ku_connect.middleware.guard import guard

__all__ = ["RequestContext", "Authenticate", "Authorize", "RateLimit", "Validate", "guard"]
