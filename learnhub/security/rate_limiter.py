"""
Rate limiting for quiz endpoints.

Keeps an in-memory sliding window of request timestamps per learner
(or per IP for anonymous callers).
"""

from functools import wraps
from flask import request, jsonify, current_app, make_response
from collections import defaultdict
import threading
import time


class RateLimiter:
    """
    Rate limiter that tracks requests per IP address or user.

    Uses a sliding window algorithm to track requests within a time period.
    """

    def __init__(self):
        self._storage = defaultdict(list)
        self._lock = threading.Lock()

    def is_allowed(self, identifier: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        """
        Check if a request is allowed based on rate limit.

        Args:
            identifier: Unique identifier (IP address or user ID)
            max_requests: Maximum number of requests allowed
            window_seconds: Time window in seconds

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        current_time = time.time()
        cutoff = current_time - window_seconds

        with self._lock:
            timestamps = self._storage[identifier]
            timestamps[:] = [ts for ts in timestamps if ts > cutoff]

            if len(timestamps) >= max_requests:
                return False, 0

            timestamps.append(current_time)
            return True, max_requests - len(timestamps)

    def reset(self, identifier: str = None):
        """Reset rate limit for one identifier, or for everyone."""
        with self._lock:
            if identifier is None:
                self._storage.clear()
            else:
                self._storage.pop(identifier, None)


# Global rate limiter instance
_rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


def _identifier(per: str) -> str:
    if per == 'user':
        from flask_login import current_user
        if current_user.is_authenticated:
            return f"user:{current_user.id}"
    ip = request.remote_addr or request.environ.get('REMOTE_ADDR', 'unknown')
    return f"ip:{ip}"


def rate_limit(max_requests: int = None, window_seconds: int = 60, per: str = 'ip',
               config_key: str = None,
               error_message: str = "Rate limit exceeded. Please try again later."):
    """
    Decorator to rate limit a route.

    Args:
        max_requests: Maximum number of requests allowed
        window_seconds: Time window in seconds
        per: Rate limit per 'ip' or 'user'
        config_key: App config key holding max_requests; read per request
        error_message: Error message to return when limit exceeded

    Example:
        @quiz_bp.route('/api/attempt-submit', methods=['POST'])
        @rate_limit(per='user', config_key='QUIZ_SUBMIT_RATE_LIMIT')
        def submit_attempt():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            limit = max_requests
            if config_key:
                limit = current_app.config.get(config_key, limit)
            if not limit:
                return f(*args, **kwargs)

            identifier = _identifier(per)
            is_allowed, remaining = _rate_limiter.is_allowed(identifier, limit, window_seconds)

            if not is_allowed:
                current_app.logger.warning(
                    f"SECURITY: Rate limit exceeded - Identifier: {identifier}, "
                    f"Endpoint: {request.path}, IP: {request.remote_addr}"
                )
                response = make_response(jsonify({
                    'success': False,
                    'error': error_message,
                    'kind': 'RateLimited',
                    'retry_after': window_seconds
                }), 429)
                response.headers['X-RateLimit-Limit'] = str(limit)
                response.headers['X-RateLimit-Remaining'] = '0'
                response.headers['X-RateLimit-Reset'] = str(int(time.time()) + window_seconds)
                return response

            response = make_response(f(*args, **kwargs))
            response.headers['X-RateLimit-Limit'] = str(limit)
            response.headers['X-RateLimit-Remaining'] = str(remaining)
            response.headers['X-RateLimit-Reset'] = str(int(time.time()) + window_seconds)
            return response

        return decorated_function
    return decorator
