"""Custom exceptions for world generation."""


class WorldGenError(Exception):
    """Base exception for world generation errors."""

    pass


class ConfigurationError(WorldGenError, ValueError):
    """Raised when a configuration is rejected before generation starts."""

    pass


class WorldValidationError(WorldGenError):
    """Raised when a generated world breaks one of its invariants."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            f"World validation failed with {len(errors)} errors: " + "; ".join(errors)
        )
