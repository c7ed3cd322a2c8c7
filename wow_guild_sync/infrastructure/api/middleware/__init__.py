"""
API Middleware

Middleware components for inbound API requests.
"""

from .rate_limiter import RateLimiter, MultiKeyRateLimiter, RateLimitExceeded

__all__ = [
    "RateLimiter",
    "MultiKeyRateLimiter",
    "RateLimitExceeded",
]
