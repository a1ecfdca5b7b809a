from fastapi import HTTPException, status


class StoreError(HTTPException):
    """Base for errors the store raises on purpose.

    Subclasses only pin the status code, so services can raise them exactly
    like a plain ``HTTPException`` and the app-level handler renders them.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=message or self.default_message,
        )

    @property
    def message(self) -> str:
        return self.detail


class InvalidInputError(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class UnauthorizedError(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFoundError(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(StoreError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalError(StoreError):
    pass


class AuthenticationError(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    def __init__(self, message: str | None = None):
        super().__init__(message)
        self.headers = {"WWW-Authenticate": "Bearer"}
