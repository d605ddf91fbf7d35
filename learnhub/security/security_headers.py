"""
Security headers for the JSON API.

Attempt payloads can carry correct answers, so API responses are never
cached by browsers or intermediaries.
"""

from flask import request


class SecurityHeaders:
    """Adds security headers to HTTP responses."""

    @staticmethod
    def init_app(app):
        """
        Initialize security headers for the Flask app.

        Args:
            app: Flask application instance
        """
        @app.after_request
        def add_security_headers(response):
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'SAMEORIGIN'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            if '/api/' in request.path:
                response.cache_control.no_store = True
                response.cache_control.no_cache = True
                response.cache_control.must_revalidate = True
            return response
