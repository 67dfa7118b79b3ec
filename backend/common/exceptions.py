"""Common exceptions for the monitoring panel."""
from __future__ import annotations


class PanelError(Exception):
    """Base exception for panel-wide errors."""
    pass


class ConfigurationError(PanelError):
    """Raised when configuration is invalid or missing."""
    pass


class ReadFailure(PanelError):
    """Raised when a meter (or an account aggregate) cannot be read."""

    def __init__(self, message: str, meter_id: int = None) -> None:
        super().__init__(message)
        self.meter_id = meter_id


class AccountNotFound(PanelError):
    """Raised when an account number is unknown to the registry."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class InvalidTransition(PanelError):
    """Raised when the account state rules reject a state change."""
    pass


class OperationNotAllowed(PanelError):
    """Raised when the current account state forbids an operation."""
    pass


class MeterAlreadyLinked(PanelError):
    """Raised when a meter is already linked to another account."""

    def __init__(self, meter_id: int, account_id: str) -> None:
        super().__init__(f"Meter {meter_id} is already linked to account {account_id}")
        self.meter_id = meter_id
        self.account_id = account_id


class NotificationError(PanelError):
    """Raised by a notification strategy when delivery fails."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(f"[{kind}] {message}")
        self.kind = kind


class HistoryError(PanelError):
    """Base exception for command history no-ops."""
    pass


class NothingToUndo(HistoryError):
    """Raised when there is no executed command to undo, or the last one had no effect."""

    def __init__(self, description: str = None) -> None:
        super().__init__(f"Nothing to undo for '{description}'" if description else "Nothing to undo")
        self.description = description


class NothingToRedo(HistoryError):
    """Raised when there is no undone command to redo."""

    def __init__(self) -> None:
        super().__init__("Nothing to redo")
