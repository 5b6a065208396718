"""Domain errors. Each carries the HTTP status the API layer answers with."""


class LearningError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(message)
        self.message = message


class ValidationError(LearningError):
    status_code = 400


class UnsupportedMediaError(LearningError):
    status_code = 400


class AuthenticationError(LearningError):
    status_code = 401

    def __init__(self, message: str = "Unauthenticated: You are not logged in"):
        super().__init__(message)


class AuthorizationError(LearningError):
    status_code = 403


class QuotaExceededError(LearningError):
    status_code = 403


class NotFoundError(LearningError):
    status_code = 404


class PayloadTooLargeError(LearningError):
    status_code = 413


class StorageWriteError(LearningError):
    status_code = 500


class PersistenceError(LearningError):
    status_code = 500


class TransportError(LearningError):
    status_code = 502


def describe_schema_error(exc) -> str:
    """Flattens a pydantic ValidationError into one line for the ``error`` field."""
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
