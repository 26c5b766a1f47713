"""Exceptions raised while talking to a container registry."""

__all__ = [
    "DigestConflictError",
    "RegistryAuthError",
    "RegistryError",
    "RegistryNetworkError",
    "RegistryNotFoundError",
    "RegistryServerError",
    "RegistryUnsupportedError",
]


class RegistryError(Exception):
    """A registry request did not succeed.

    Parameters
    ----------
    message
        Human-readable description of the failure.
    status
        HTTP status code of the response, if there was one.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RegistryAuthError(RegistryError):
    """Credentials were missing or rejected.  Fatal for the whole run."""


class RegistryNotFoundError(RegistryError):
    """The repository, tag, or manifest does not exist."""


class RegistryUnsupportedError(RegistryError):
    """The registry does not allow the operation (usually deletion)."""


class DigestConflictError(RegistryError):
    """The manifest digest is still referenced by a tag we keep."""


class RegistryServerError(RegistryError):
    """The registry answered with a 5xx status."""


class RegistryNetworkError(RegistryError):
    """The request never got a response."""
