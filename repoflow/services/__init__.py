"""Service layer — business logic orchestration and the shared error taxonomy."""


class ServiceError(Exception):
    """Base service exception."""


class NotFoundError(ServiceError):
    """Resource not found (-> HTTP 404)."""


class ValidationError(ServiceError):
    """Input validation error (-> HTTP 422)."""


class AuthenticationError(ServiceError):
    """Authentication failure (-> HTTP 401)."""


class InvalidRepositoryUrl(ValidationError):
    """The input is not a usable GitHub repository reference.

    Raised before any network or filesystem work, so callers may surface the
    message verbatim.
    """


class RepositoryFetchFailed(ServiceError):
    """The repository could not be downloaded (private, missing, network).

    The message is kept descriptive and stable; the UI layer pattern-matches
    on it to produce friendlier text.
    """


class RepositoryIngestionFailed(ServiceError):
    """Locate / fetch / serialize failed; carries the original cause message (-> HTTP 502)."""


class DiagramSynthesisFailure(ServiceError):
    """One diagram kind could not be synthesized. Always absorbed into a fallback."""


class PersistenceWriteFailure(ServiceError):
    """A durable write failed. Logged, never surfaced to the caller."""
