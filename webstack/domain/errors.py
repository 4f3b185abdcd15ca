"""Exception types shared across the server."""


class StartupError(Exception):
    """Raised when a server cannot be initialized or bound."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


class LifecycleError(Exception):
    """Raised on an invalid server state transition."""
