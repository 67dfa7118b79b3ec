"""Account registry: lookup and mutation of water accounts and their meters."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional

from django.db import transaction

from common.exceptions import AccountNotFound, MeterAlreadyLinked, OperationNotAllowed

from .states import AccountState, check_transition, parse_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Customer:
    """Snapshot of an account holder."""

    document: str
    name: str
    email: str = ""
    phone: str = ""


@dataclass(frozen=True)
class Account:
    """Snapshot of a water account as seen by the monitoring core."""

    account_id: str
    customer_document: str
    state: AccountState = AccountState.ACTIVE
    meter_ids: FrozenSet[int] = field(default_factory=frozenset)
    consumption_limit: float = 0.0
    address: str = ""


class AccountRegistry(ABC):
    """
    Abstract account store consumed by monitoring, alerts and commands.

    Every mutating call raises AccountNotFound for unknown accounts and
    returns the updated Account snapshot.
    """

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Return the account snapshot or None."""
        pass

    @abstractmethod
    def get_customer(self, document: str) -> Optional[Customer]:
        """Return the customer snapshot or None."""
        pass

    @abstractmethod
    def list_accounts(self) -> List[Account]:
        """Return all accounts ordered by number."""
        pass

    @abstractmethod
    def set_account_state(self, account_id: str, state: AccountState) -> Account:
        """
        Move an account to another state.

        Raises:
            AccountNotFound: Unknown account.
            InvalidTransition: State rules reject the change.
        """
        pass

    @abstractmethod
    def link_meter(self, account_id: str, meter_id: int) -> Account:
        """
        Link a meter to an account (no-op if already linked to it).

        Raises:
            AccountNotFound: Unknown account.
            OperationNotAllowed: Account state forbids linking.
            MeterAlreadyLinked: Meter belongs to another account.
        """
        pass

    @abstractmethod
    def unlink_meter(self, account_id: str, meter_id: int) -> Account:
        """Unlink a meter from an account (no-op if not linked)."""
        pass

    @abstractmethod
    def set_consumption_limit(self, account_id: str, limit: float) -> Account:
        """Persist the account's alert threshold."""
        pass

    def require_account(self, account_id: str) -> Account:
        account = self.get_account(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account


class InMemoryAccountRegistry(AccountRegistry):
    """Thread-safe registry kept in process memory."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: Dict[str, Account] = {}
        self._customers: Dict[str, Customer] = {}

    def add_customer(self, customer: Customer) -> Customer:
        with self._lock:
            self._customers[customer.document] = customer
        return customer

    def add_account(self, account: Account) -> Account:
        with self._lock:
            for meter_id in account.meter_ids:
                self._check_meter_free(meter_id, account.account_id)
            self._accounts[account.account_id] = account
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    def get_customer(self, document: str) -> Optional[Customer]:
        with self._lock:
            return self._customers.get(document)

    def list_accounts(self) -> List[Account]:
        with self._lock:
            return [self._accounts[key] for key in sorted(self._accounts)]

    def set_account_state(self, account_id: str, state: AccountState) -> Account:
        state = parse_state(state)
        with self._lock:
            account = self.require_account(account_id)
            if not check_transition(account_id, account.state, state):
                return account
            updated = replace(account, state=state)
            self._accounts[account_id] = updated
        logger.info(f"Account {account_id}: {account.state.value} -> {state.value}")
        return updated

    def link_meter(self, account_id: str, meter_id: int) -> Account:
        with self._lock:
            account = self.require_account(account_id)
            if meter_id in account.meter_ids:
                return account
            if not account.state.can_link_meter:
                raise OperationNotAllowed(
                    f"Account {account_id} is {account.state.value}; meters cannot be linked"
                )
            self._check_meter_free(meter_id, account_id)
            updated = replace(account, meter_ids=account.meter_ids | {meter_id})
            self._accounts[account_id] = updated
        logger.info(f"Meter {meter_id} linked to account {account_id}")
        return updated

    def unlink_meter(self, account_id: str, meter_id: int) -> Account:
        with self._lock:
            account = self.require_account(account_id)
            if meter_id not in account.meter_ids:
                return account
            updated = replace(account, meter_ids=account.meter_ids - {meter_id})
            self._accounts[account_id] = updated
        logger.info(f"Meter {meter_id} unlinked from account {account_id}")
        return updated

    def set_consumption_limit(self, account_id: str, limit: float) -> Account:
        with self._lock:
            account = self.require_account(account_id)
            updated = replace(account, consumption_limit=float(limit))
            self._accounts[account_id] = updated
        return updated

    def _check_meter_free(self, meter_id: int, account_id: str) -> None:
        for other in self._accounts.values():
            if other.account_id != account_id and meter_id in other.meter_ids:
                raise MeterAlreadyLinked(meter_id, other.account_id)


class DatabaseAccountRegistry(AccountRegistry):
    """Registry backed by the Django ORM models."""

    def get_account(self, account_id: str) -> Optional[Account]:
        from .models import WaterAccount

        row = (
            WaterAccount.objects.select_related("customer")
            .prefetch_related("meter_links")
            .filter(number=account_id)
            .first()
        )
        return self._to_account(row) if row else None

    def get_customer(self, document: str) -> Optional[Customer]:
        from .models import Customer as CustomerModel

        row = CustomerModel.objects.filter(document=document).first()
        if row is None:
            return None
        return Customer(document=row.document, name=row.name, email=row.email, phone=row.phone)

    def list_accounts(self) -> List[Account]:
        from .models import WaterAccount

        rows = WaterAccount.objects.select_related("customer").prefetch_related("meter_links")
        return [self._to_account(row) for row in rows]

    def set_account_state(self, account_id: str, state: AccountState) -> Account:
        state = parse_state(state)
        with transaction.atomic():
            row = self._locked_row(account_id)
            current = AccountState(row.state)
            if check_transition(account_id, current, state):
                row.state = state.value
                row.save(update_fields=["state", "updated_at"])
                logger.info(f"Account {account_id}: {current.value} -> {state.value}")
        return self.require_account(account_id)

    def link_meter(self, account_id: str, meter_id: int) -> Account:
        from .models import MeterLink

        with transaction.atomic():
            row = self._locked_row(account_id)
            existing = MeterLink.objects.select_related("account").filter(meter_id=meter_id).first()
            if existing is not None:
                if existing.account_id == row.id:
                    return self.require_account(account_id)
                raise MeterAlreadyLinked(meter_id, existing.account.number)
            if not AccountState(row.state).can_link_meter:
                raise OperationNotAllowed(
                    f"Account {account_id} is {row.state}; meters cannot be linked"
                )
            MeterLink.objects.create(meter_id=meter_id, account=row)
        logger.info(f"Meter {meter_id} linked to account {account_id}")
        return self.require_account(account_id)

    def unlink_meter(self, account_id: str, meter_id: int) -> Account:
        from .models import MeterLink

        with transaction.atomic():
            row = self._locked_row(account_id)
            deleted, _ = MeterLink.objects.filter(meter_id=meter_id, account=row).delete()
        if deleted:
            logger.info(f"Meter {meter_id} unlinked from account {account_id}")
        return self.require_account(account_id)

    def set_consumption_limit(self, account_id: str, limit: float) -> Account:
        with transaction.atomic():
            row = self._locked_row(account_id)
            row.consumption_limit = float(limit)
            row.save(update_fields=["consumption_limit", "updated_at"])
        return self.require_account(account_id)

    def _locked_row(self, account_id: str):
        from .models import WaterAccount

        row = WaterAccount.objects.select_for_update().filter(number=account_id).first()
        if row is None:
            raise AccountNotFound(account_id)
        return row

    @staticmethod
    def _to_account(row) -> Account:
        return Account(
            account_id=row.number,
            customer_document=row.customer.document,
            state=AccountState(row.state),
            meter_ids=frozenset(link.meter_id for link in row.meter_links.all()),
            consumption_limit=row.consumption_limit,
            address=row.address,
        )
