class ProgressError(Exception):
    """Base class for progress engine failures."""


class FetchError(ProgressError):
    """Raised when the storage collaborator cannot deliver rows."""


class InvalidRangeError(ProgressError, ValueError):
    """Raised for an unsupported day range under the strict range policy."""

    def __init__(self, days: int, allowed: tuple[int, ...]) -> None:
        super().__init__(
            f"unsupported day range {days}; expected one of {', '.join(map(str, allowed))}"
        )
        self.days = days
        self.allowed = allowed


class StaleRequestError(ProgressError):
    """Raised when a newer request superseded the one being computed."""

    def __init__(self, subscriber: str, token: int) -> None:
        super().__init__(f"request {token} for {subscriber!r} was superseded")
        self.subscriber = subscriber
        self.token = token
