"""Application error taxonomy.

Every expected failure is raised as an :class:`AppError` subclass carrying an
HTTP status and a client-safe message. ``main.py`` registers one handler that
turns these into ``{"success": false, "message": ...}`` responses; anything
else is treated as an unclassified 500.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class EmailDeliveryError(Exception):
    """The mail relay rejected or failed to accept a message."""
