"""
API error types.

Raised from services and routes; the app-level handler registered in
create_app() renders them as ``{"success": false, "message": ...}``.
"""


class APIError(Exception):
    status_code = 500
    default_message = 'Server error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'success': False, 'message': self.message}


class ValidationError(APIError):
    status_code = 400
    default_message = 'Invalid request'


class AuthenticationError(APIError):
    status_code = 401
    default_message = 'Access denied, please log in'


class PermissionDeniedError(APIError):
    status_code = 403
    default_message = 'You must be an admin to access this route'


class NotFoundError(APIError):
    status_code = 404
    default_message = 'Not found'


class StorageError(APIError):
    """A commit failed; the transaction has been rolled back."""
    status_code = 500
    default_message = 'Internal server error. Please try again later.'
