"""Water account states and the rules for moving between them."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet

from common.exceptions import InvalidTransition

logger = logging.getLogger(__name__)


class AccountState(str, Enum):
    """Lifecycle state of a water account."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELINQUENT = "delinquent"
    CANCELLED = "cancelled"

    @property
    def can_consume(self) -> bool:
        return self is AccountState.ACTIVE

    @property
    def can_link_meter(self) -> bool:
        return self is AccountState.ACTIVE

    @property
    def can_edit(self) -> bool:
        return self is AccountState.ACTIVE

    @property
    def is_final(self) -> bool:
        return self is AccountState.CANCELLED


# Valid targets from each state; staying in the same state is always a no-op.
VALID_TRANSITIONS: Dict[AccountState, FrozenSet[AccountState]] = {
    AccountState.ACTIVE: frozenset({
        AccountState.SUSPENDED,
        AccountState.DELINQUENT,
        AccountState.CANCELLED,
    }),
    AccountState.SUSPENDED: frozenset({
        AccountState.ACTIVE,
        AccountState.DELINQUENT,
        AccountState.CANCELLED,
    }),
    AccountState.DELINQUENT: frozenset({
        AccountState.ACTIVE,
        AccountState.SUSPENDED,
        AccountState.CANCELLED,
    }),
    AccountState.CANCELLED: frozenset(),
}


def check_transition(account_id: str, current: AccountState, target: AccountState) -> bool:
    """
    Validate an account state change.

    Args:
        account_id: Account number (for messages only)
        current: State the account is in
        target: Requested state

    Returns:
        True if the state actually changes, False for a same-state no-op.

    Raises:
        InvalidTransition: If the rules forbid the change.
    """
    if current == target:
        return False

    if target in VALID_TRANSITIONS[current]:
        return True

    if current.is_final:
        raise InvalidTransition(
            f"Account {account_id} is {current.value}; {current.value} is a final state"
        )
    raise InvalidTransition(
        f"Account {account_id}: transition {current.value} -> {target.value} is not allowed"
    )


def parse_state(value) -> AccountState:
    """Coerce a state name (any case) into an AccountState."""
    if isinstance(value, AccountState):
        return value
    try:
        return AccountState(str(value).lower())
    except ValueError:
        raise InvalidTransition(f"Unknown account state: {value}") from None
