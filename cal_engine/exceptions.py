"""Custom exceptions for the Computer Account Lifecycle Engine."""


class CalEngineError(Exception):
    """Base class for all engine errors."""

    pass


class ConfigurationError(CalEngineError):
    """Raised when the engine configuration cannot be used for a pass."""

    pass


class HoldingLocationError(ConfigurationError):
    """Raised when the holding location does not resolve to exactly one container."""

    def __init__(self, identifier: str, match_count: int):
        self.identifier = identifier
        self.match_count = match_count
        super().__init__(
            f"Holding location '{identifier}' resolved to {match_count} containers, expected exactly 1"
        )


class DirectoryError(CalEngineError):
    """Raised when the directory service cannot be reached or queried."""

    pass


class NotificationError(CalEngineError):
    """Raised when a pass report cannot be delivered."""

    pass
