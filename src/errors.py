class DirectoryError(Exception):
    """Base class for listing and rating failures."""


class ValidationError(DirectoryError, ValueError):
    pass


class InvalidScoreError(ValidationError):
    pass


class NotFoundError(DirectoryError, LookupError):
    pass


class ForbiddenError(DirectoryError, PermissionError):
    pass


class DuplicateOwnershipError(ForbiddenError):
    pass


class ConflictError(DirectoryError):
    """Concurrent writers kept invalidating the listing version."""


class StorageError(DirectoryError):
    """A stored record could not be decoded into a listing."""
