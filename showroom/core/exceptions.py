"""Exception taxonomy shared by the auth core and its storage layer."""


class ShowroomError(Exception):
    """Base class for errors raised by the auth core."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(ShowroomError):
    """Fatal startup error: missing or weak secrets, malformed duration strings."""


class UnknownRoleError(ShowroomError):
    """A role outside the permission table was used for a lookup."""


class ConflictError(ShowroomError):
    """A unique value (session or single-use token) already exists. Retryable."""


class StorageUnavailable(ShowroomError):
    """The persistence backend failed or timed out. Retryable by the caller."""
