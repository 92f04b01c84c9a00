"""
API error types and their JSON rendering.

Views and the workflow raise these; the handlers registered in app.py turn
them into the standard ``{"success": false, "message": ...}`` envelope.
"""


class ApiError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None, data=None, errors=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data
        self.errors = errors

    def to_dict(self):
        body = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        if self.data is not None:
            body["data"] = self.data
        return body


class ValidationError(ApiError):
    """Malformed or missing input."""
    status_code = 400


class ConflictError(ApiError):
    """Operation attempted on an entity in an incompatible state."""
    status_code = 400


class UnauthorizedError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404
