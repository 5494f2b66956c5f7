class BadgeException(Exception):
    """Base exception for all badge pipeline errors."""
    pass

class ConfigurationError(BadgeException):
    """Raised when a required setting (username, token, ...) is missing or invalid."""
    pass

class TransportError(BadgeException):
    """Raised when the metrics feed is unreachable or returns a malformed page."""
    pass

class RateLimitExceededException(TransportError):
    """Raised when the GitHub GraphQL rate limit is hit."""
    def __init__(self, reset_at: str, message: str = "GitHub API rate limit exceeded."):
        self.reset_at = reset_at
        super().__init__(f"{message} Resets at: {reset_at}")

class StorageException(BadgeException):
    """Raised when a storage operation fails for a reason other than a missing key."""
    pass
