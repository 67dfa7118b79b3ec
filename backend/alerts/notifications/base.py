"""Notification strategy interface and registry."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Type

from accounts.registry import Account, Customer
from alerts.store import Alert

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"
PUSH = "push"
CONCESSIONAIRE = "concessionaire"
INTERNAL_PANEL = "internal_panel"

ALL_KINDS = (EMAIL, SMS, PUSH, CONCESSIONAIRE, INTERNAL_PANEL)


class NotificationStrategy(ABC):
    """
    One notification channel for one account.

    Instances are created per account so that enabling or disabling a
    channel for one account never affects another.
    """

    kind: str = ""

    def __init__(self, options: Dict[str, Any] = None) -> None:
        """
        Initialize strategy.

        Args:
            options: Channel parameters; unset keys fall back to settings
        """
        self.options = dict(options or {})
        self._enabled = bool(self.options.pop("enabled", True))
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = bool(value)

    @abstractmethod
    def notify(self, alert: Alert, account: Account, customer: Customer) -> None:
        """
        Deliver the alert.

        Raises:
            NotificationError: If delivery fails.
        """
        pass

    def __repr__(self) -> str:
        state = "on" if self._enabled else "off"
        return f"<{self.__class__.__name__} {self.kind} {state}>"


class StrategyRegistry:
    """
    Registry for notification strategy implementations.

    Uses factory pattern to instantiate strategies by kind.
    """

    _strategies: Dict[str, Type[NotificationStrategy]] = {}

    @classmethod
    def register(cls, kind: str) -> callable:
        """
        Decorator to register a strategy implementation.

        Usage:
            @StrategyRegistry.register('email')
            class EmailNotification(NotificationStrategy):
                ...
        """
        def decorator(strategy_class: Type[NotificationStrategy]) -> Type[NotificationStrategy]:
            if not issubclass(strategy_class, NotificationStrategy):
                raise TypeError(f"{strategy_class} must inherit from NotificationStrategy")
            strategy_class.kind = kind.lower()
            cls._strategies[kind.lower()] = strategy_class
            logger.debug(f"Registered notification strategy: {kind} -> {strategy_class.__name__}")
            return strategy_class
        return decorator

    @classmethod
    def create(cls, kind: str, options: Dict[str, Any] = None) -> NotificationStrategy:
        """
        Factory method to create a strategy instance.

        Raises:
            ValueError: If kind is not registered.
        """
        kind = kind.lower()
        if kind not in cls._strategies:
            raise ValueError(
                f"Notification kind '{kind}' not registered. "
                f"Available: {list(cls._strategies.keys())}"
            )
        return cls._strategies[kind](options or {})

    @classmethod
    def create_many(cls, kinds: Iterable[str]) -> List[NotificationStrategy]:
        return [cls.create(kind) for kind in kinds]

    @classmethod
    def list_kinds(cls) -> List[str]:
        """Return list of registered kinds."""
        return list(cls._strategies.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registered strategies (mainly for testing)."""
        cls._strategies.clear()
