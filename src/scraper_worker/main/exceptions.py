class WorkerError(Exception):
    pass


class MissingCredentialError(WorkerError):
    """Raised at startup when the API key or custom scraper id is absent."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} is required")


class RegistrationError(WorkerError):
    """Raised when the control plane refuses to register the scraper."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Failed to register scraper (HTTP {status})")


class WorkerNotConfiguredError(WorkerError):
    def __init__(self, scraper_id: str | None = None):
        self.scraper_id = scraper_id
        super().__init__(f"Scraper {scraper_id or '<unknown>'} is not configured")


class QueueUnavailableError(WorkerError):
    """Raised when a request to the control plane produced no HTTP response at all."""

    def __init__(self, endpoint: str, cause: BaseException):
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"Request to {endpoint} failed: {type(cause).__name__}: {cause}")
