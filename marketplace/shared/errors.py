"""Error taxonomy shared by all marketplace services.

Blueprints map these to HTTP outcomes:

- ValidationError -> 400
- AuthorizationError, NotFoundError -> 404 (never 403, to avoid confirming
  that a record exists)
- ConflictError -> 409
- StorageError -> 503 with a generic message
- ExternalServiceError is recovered inside the service that raised it and
  never reaches a handler
"""


class MarketplaceError(Exception):
    """Base class for marketplace service errors."""


class ValidationError(MarketplaceError, ValueError):
    """A required field is missing or a value is malformed."""


class AuthorizationError(MarketplaceError):
    """The acting user may not view or mutate the record."""


class NotFoundError(MarketplaceError):
    """No matching record exists."""


class ConflictError(MarketplaceError):
    """A conditional write lost a race or hit a uniqueness constraint."""


class ExternalServiceError(MarketplaceError):
    """An external collaborator (e.g. the sentiment model) failed."""


class StorageError(MarketplaceError):
    """The database is unavailable or an operation on it failed."""
