from http import HTTPStatus


class PocketbookError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PocketbookError):
    status_code = HTTPStatus.BAD_REQUEST


class DuplicateEmailError(ValidationError):
    pass


class WeakPasswordError(ValidationError):
    pass


class InvalidTransitionError(ValidationError):
    pass


class NotAuthenticatedError(PocketbookError):
    status_code = HTTPStatus.UNAUTHORIZED


class BadCredentialError(NotAuthenticatedError):
    pass


class NotFoundError(PocketbookError):
    status_code = HTTPStatus.NOT_FOUND


class NotOwnerError(NotFoundError):
    # reported as 404 so callers cannot tell which ids other users own
    pass
