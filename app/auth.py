"""
Authentication and authorization utilities for the volunteer hub.

Bearer-token (JWT) issuance and the decorators that guard API routes.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import request, current_app, g

from app.utils.errors import AuthenticationError, PermissionDeniedError


# -------------------- TOKEN CONFIGURATION --------------------

JWT_ALGORITHM = 'HS256'
DEFAULT_TOKEN_MINUTES = 60


def create_access_token(volunteer):
    """Issue a signed token carrying the user id and role."""
    minutes = current_app.config.get('JWT_EXPIRES_MINUTES', DEFAULT_TOKEN_MINUTES)
    payload = {
        'userId': volunteer.id,
        'role': volunteer.role,
        'exp': datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=JWT_ALGORITHM)


def decode_access_token(token):
    """Return the token payload. Raises AuthenticationError when invalid or expired."""
    try:
        payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Token expired, please log in again')
    except jwt.InvalidTokenError as exc:
        current_app.logger.warning(f"Token verification error: {exc}")
        raise AuthenticationError('Invalid token')

    if 'userId' not in payload or 'role' not in payload:
        raise AuthenticationError('Invalid token')
    return payload


def _bearer_token():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


# -------------------- AUTHENTICATION DECORATORS --------------------

def token_required(f):
    """
    Decorator to require a valid bearer token.

    Sets ``g.current_user_id`` and ``g.current_user_role`` for the view.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            current_app.logger.info(f"No authentication token provided for {request.path}")
            raise AuthenticationError()

        payload = decode_access_token(token)
        g.current_user_id = payload['userId']
        g.current_user_role = payload['role']
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require an admin token. Implies token_required."""
    @wraps(f)
    @token_required
    def decorated_function(*args, **kwargs):
        if g.current_user_role != 'admin':
            current_app.logger.warning(f"Unauthorized admin access attempt by user {g.current_user_id}")
            raise PermissionDeniedError()
        return f(*args, **kwargs)
    return decorated_function
