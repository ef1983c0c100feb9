"""
Named rate-limit policies.

Each policy owns independent counters, so exhausting "write" does not affect
"search". Admin policies key by user id; everything else keys by client ip.
"""

from typing import Dict

from ku_connect.core.config import Settings
from ku_connect.middleware.rate_limit import (
    RateLimitPolicy, client_ip_key, user_or_ip_key,
)

GENERAL = "general"
STRICT = "strict"
AUTH = "auth"
WRITE = "write"
SEARCH = "search"
PREFERENCES = "preferences"
ADMIN_READ = "admin_read"
ADMIN_WRITE = "admin_write"
ADMIN_CRITICAL = "admin_critical"
ADMIN_ANNOUNCEMENT = "admin_announcement"


def build_policies(settings: Settings) -> Dict[str, RateLimitPolicy]:
    window = settings.rate_limit_window_ms
    hourly = settings.rate_limit_admin_hourly_window_ms

    policies = [
        RateLimitPolicy(GENERAL, window, settings.rate_limit_general_max, client_ip_key,
                        "Too many requests from this IP, please try again later."),
        RateLimitPolicy(STRICT, window, settings.rate_limit_strict_max, client_ip_key,
                        "Too many requests to this resource. Please try again later."),
        RateLimitPolicy(AUTH, window, settings.rate_limit_auth_max, client_ip_key,
                        "Too many authentication attempts. Please try again after 15 minutes."),
        RateLimitPolicy(WRITE, window, settings.rate_limit_write_max, client_ip_key,
                        "Too many write operations. Please try again later."),
        RateLimitPolicy(SEARCH, window, settings.rate_limit_search_max, client_ip_key,
                        "Too many search requests. Please try again later."),
        RateLimitPolicy(PREFERENCES, window, settings.rate_limit_preferences_max, client_ip_key,
                        "Too many preference updates. Please try again later."),
        RateLimitPolicy(ADMIN_READ, window, settings.rate_limit_admin_read_max, user_or_ip_key("admin_read"),
                        "Too many admin read requests. Please try again later."),
        RateLimitPolicy(ADMIN_WRITE, window, settings.rate_limit_admin_write_max, user_or_ip_key("admin_write"),
                        "Too many admin write operations. Please slow down and try again later."),
        RateLimitPolicy(ADMIN_CRITICAL, hourly, settings.rate_limit_admin_critical_max,
                        user_or_ip_key("admin_critical"),
                        "Too many critical admin operations. Please wait before performing more "
                        "user status changes."),
        RateLimitPolicy(ADMIN_ANNOUNCEMENT, hourly, settings.rate_limit_admin_announcement_max,
                        user_or_ip_key("admin_announcement"),
                        "Too many announcements created. Please wait before creating more."),
    ]
    return {p.name: p for p in policies}
