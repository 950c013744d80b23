from typing import Optional, Dict, Any


class FintrackException(Exception):
    """Base exception for fintrack."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(FintrackException):
    """Raised when a requested resource is not found."""

    pass


class PermissionDeniedError(FintrackException):
    """Raised when user doesn't have permission for an action."""

    pass


class InsufficientCardLimitError(FintrackException):
    """Raised when a card's available limit can't cover an expense."""

    pass


class AssetProviderError(FintrackException):
    """Raised when an external asset data provider fails."""

    pass
