"""Domain errors raised by the scheduling core.

Each error is an ``HTTPException`` carrying a fixed status code, so the same
exception reads correctly when a service is called directly and when it
surfaces through a route.
"""

from fastapi import HTTPException, status


class ClinicError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=type(self).status_code, detail=detail)


class NotFoundError(ClinicError):
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ClinicError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(ClinicError):
    status_code = status.HTTP_409_CONFLICT


class InsufficientInventoryError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateTransitionError(ClinicError):
    status_code = status.HTTP_400_BAD_REQUEST
