"""Exception hierarchy for fetching, extraction, and change detection."""


class JobWatchError(Exception):
    """Base class for all job-watch failures."""


class InvalidInputError(JobWatchError):
    """Malformed or non-http(s) source URL."""


class BlockedAddressError(JobWatchError):
    """Hostname resolves to a private, loopback, or link-local address."""


class FetchError(JobWatchError):
    """Direct retrieval of a page or JSON document failed."""


class UpstreamHttpError(FetchError):
    def __init__(self, status: int, message: str | None = None):
        super().__init__(message or f"Upstream returned {status}")
        self.status = status


class UpstreamTooLargeError(FetchError):
    def __init__(self, limit: int):
        super().__init__(f"Response too large (limit {limit} bytes)")
        self.limit = limit


class TooManyRedirectsError(FetchError):
    def __init__(self, max_redirects: int):
        super().__init__(f"Too many redirects (more than {max_redirects})")
        self.max_redirects = max_redirects


class FetchTimeoutError(FetchError):
    """The overall fetch deadline expired."""


class ProviderUnconfiguredError(JobWatchError):
    """An external fetch provider was requested without an API key."""


class ProviderError(JobWatchError):
    """An external fetch provider returned an error or an unusable payload."""


class AdapterParseError(JobWatchError):
    def __init__(self, adapter: str, cause: BaseException):
        super().__init__(f"Adapter {adapter!r} failed: {type(cause).__name__}: {cause}")
        self.adapter = adapter
        self.cause = cause


class PersistenceError(JobWatchError):
    """The store rejected a read or write."""


class NotFoundError(JobWatchError):
    """A source or job id does not exist."""


class RefreshInProgressError(JobWatchError):
    """A full refresh is already running; the new request is rejected."""
