class DataClientError(Exception):
    """Base class."""
    name = "InternalError"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.name)
        self.message = str(self.args[0])


class DatabaseError(DataClientError):
    """Database operation failed."""
    name = "DatabaseError"


class StorageError(DataClientError):
    """Storage backend operation failed."""
    name = "StorageError"


# Старое имя из клиента документов
MinioError = StorageError


class NotFoundError(DataClientError):
    """Not found."""
    name = "NotFound"
    status_code = 404


class NotAuthorizedError(DataClientError):
    """User is not a manager."""
    name = "NotAuthorized"
    status_code = 400


class ForbiddenError(DataClientError):
    """Forbidden."""
    name = "Forbidden"
    status_code = 403


class ConflictError(DataClientError):
    """Conflict."""
    name = "Conflict"
    status_code = 409
