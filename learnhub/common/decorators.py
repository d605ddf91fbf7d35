from functools import wraps
from flask import jsonify, request
from flask_login import current_user

from learnhub.common.audit import AttemptAuditLogger


def _role_required(role: str):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({
                    'success': False,
                    'error': 'Authentication required',
                    'kind': 'Unauthorized'
                }), 401
            if getattr(current_user, 'user_type', None) != role:
                AttemptAuditLogger.log_unauthorized_access(request.path, current_user.id)
                return jsonify({
                    'success': False,
                    'error': f'This endpoint is only accessible to {role}s',
                    'kind': 'Unauthorized'
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def student_required(f):
    """Decorator to require an authenticated student for an API route."""
    return _role_required('student')(f)


def tutor_required(f):
    """Decorator to require an authenticated tutor for an API route."""
    return _role_required('tutor')(f)
