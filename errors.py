"""
Guild Desk - Errors
Failure types of the conversation pipeline.
"""


class GuildDeskError(Exception):
    """Base class for bot errors."""


class ConfigUnavailable(GuildDeskError):
    """Persona or knowledge could not be loaded from the spreadsheet."""


class GenerationError(GuildDeskError):
    """Base class for generation backend failures."""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class RateLimited(GenerationError):
    """The backend rejected the request with a rate limit. Recoverable."""


class Unrecoverable(GenerationError):
    """Any other generation failure. Never retried."""
