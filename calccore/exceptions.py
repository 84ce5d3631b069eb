"""Exceptions raised inside calccore."""


class CalcCoreError(Exception):
    """Base exception with message and optional details."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class RateSourceError(CalcCoreError):
    """Raised when the exchange endpoint cannot be reached or decoded."""
    pass
