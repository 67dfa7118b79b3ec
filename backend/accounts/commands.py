"""Reversible account operations and the undo/redo history."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from django.utils import timezone

from common.exceptions import NothingToRedo, NothingToUndo

from .registry import AccountRegistry
from .states import AccountState, parse_state

logger = logging.getLogger(__name__)


class Command(ABC):
    """
    A state-changing account operation that can be reverted.

    Whatever is needed to invert the effect is captured when execute()
    runs, never at construction time.
    """

    def __init__(self, registry: AccountRegistry, account_id: str) -> None:
        self.registry = registry
        self.account_id = account_id
        self._timestamp = timezone.now()

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @abstractmethod
    def execute(self) -> None:
        """Apply the operation. Errors propagate to the caller."""
        pass

    @abstractmethod
    def undo(self) -> bool:
        """
        Revert the last successful execute().

        Returns:
            False (and nothing changes) if there is no applied effect.
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.describe()}>"


class ChangeAccountState(Command):
    """Move an account to a new state, remembering the state it left."""

    def __init__(self, registry: AccountRegistry, account_id: str, new_state) -> None:
        super().__init__(registry, account_id)
        self.new_state = parse_state(new_state)
        self.previous_state: Optional[AccountState] = None

    def execute(self) -> None:
        self.previous_state = None
        account = self.registry.require_account(self.account_id)
        prior = account.state
        self.registry.set_account_state(self.account_id, self.new_state)
        self.previous_state = prior

    def undo(self) -> bool:
        if self.previous_state is None:
            logger.warning(f"Nothing to undo for '{self.describe()}': state was never changed")
            return False
        self.registry.set_account_state(self.account_id, self.previous_state)
        logger.info(f"Account {self.account_id} restored to {self.previous_state.value}")
        self.previous_state = None
        return True

    def describe(self) -> str:
        return f"Change state of account {self.account_id} to {self.new_state.value}"


def suspend_account(registry: AccountRegistry, account_id: str) -> ChangeAccountState:
    """Shortcut for the most common state change."""
    return ChangeAccountState(registry, account_id, AccountState.SUSPENDED)


class LinkMeter(Command):
    """Link a meter to an account."""

    def __init__(self, registry: AccountRegistry, account_id: str, meter_id: int) -> None:
        super().__init__(registry, account_id)
        self.meter_id = int(meter_id)
        self._linked_by_us = False

    def execute(self) -> None:
        self._linked_by_us = False
        account = self.registry.require_account(self.account_id)
        already_linked = self.meter_id in account.meter_ids
        self.registry.link_meter(self.account_id, self.meter_id)
        self._linked_by_us = not already_linked

    def undo(self) -> bool:
        if not self._linked_by_us:
            logger.warning(f"Nothing to undo for '{self.describe()}'")
            return False
        self.registry.unlink_meter(self.account_id, self.meter_id)
        self._linked_by_us = False
        return True

    def describe(self) -> str:
        return f"Link meter {self.meter_id} to account {self.account_id}"


class UnlinkMeter(Command):
    """Unlink a meter from an account."""

    def __init__(self, registry: AccountRegistry, account_id: str, meter_id: int) -> None:
        super().__init__(registry, account_id)
        self.meter_id = int(meter_id)
        self._unlinked_by_us = False

    def execute(self) -> None:
        self._unlinked_by_us = False
        account = self.registry.require_account(self.account_id)
        was_linked = self.meter_id in account.meter_ids
        self.registry.unlink_meter(self.account_id, self.meter_id)
        self._unlinked_by_us = was_linked

    def undo(self) -> bool:
        if not self._unlinked_by_us:
            logger.warning(f"Nothing to undo for '{self.describe()}'")
            return False
        self.registry.link_meter(self.account_id, self.meter_id)
        self._unlinked_by_us = False
        return True

    def describe(self) -> str:
        return f"Unlink meter {self.meter_id} from account {self.account_id}"


class CommandHistory:
    """
    Execute/undo/redo stacks.

    A new execute() always clears the redo stack. Undoing a command that
    had no effect raises NothingToUndo and drops it from both stacks.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._executed: List[Command] = []
        self._undone: List[Command] = []

    def execute(self, command: Command) -> Command:
        if command is None:
            raise ValueError("command is required")
        with self._lock:
            command.execute()
            self._executed.append(command)
            self._undone.clear()
        logger.info(f"Executed: {command.describe()}")
        return command

    def undo(self) -> Command:
        with self._lock:
            if not self._executed:
                raise NothingToUndo()
            command = self._executed.pop()
            try:
                undone = command.undo()
            except Exception:
                self._executed.append(command)
                raise
            if not undone:
                # No applied effect: the command leaves the history for good.
                raise NothingToUndo(command.describe())
            self._undone.append(command)
        logger.info(f"Undone: {command.describe()}")
        return command

    def redo(self) -> Command:
        with self._lock:
            if not self._undone:
                raise NothingToRedo()
            command = self._undone.pop()
            try:
                command.execute()
            except Exception:
                self._undone.append(command)
                raise
            self._executed.append(command)
        logger.info(f"Redone: {command.describe()}")
        return command

    def history(self, limit: Optional[int] = None) -> List[Command]:
        """Executed commands, oldest first (the last `limit` if given)."""
        with self._lock:
            executed = list(self._executed)
        if limit is not None and limit < len(executed):
            return executed[len(executed) - limit:]
        return executed

    def can_undo(self) -> bool:
        with self._lock:
            return bool(self._executed)

    def can_redo(self) -> bool:
        with self._lock:
            return bool(self._undone)

    def clear(self) -> None:
        with self._lock:
            self._executed.clear()
            self._undone.clear()
        logger.info("Command history cleared")
