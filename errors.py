"""Exception types raised across the grade notifier."""


class GradeNotifierError(Exception):
    """Base class for every error raised by this project."""


class ConfigError(GradeNotifierError):
    """Required configuration is missing or malformed."""


class AuthError(GradeNotifierError):
    """Login did not reach the post-login landing page."""


class ParseError(GradeNotifierError):
    """A results table did not have the expected structure."""


class DeliveryError(GradeNotifierError):
    """The webhook rejected the message or could not be reached."""


class EmptySnapshotError(GradeNotifierError):
    """Every scrape attempt produced an empty snapshot."""

    def __init__(self, attempts: int):
        super().__init__(f"Scrape returned no courses after {attempts} attempt(s).")
        self.attempts = attempts
