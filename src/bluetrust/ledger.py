"""
Credit Ledger

Authoritative store of credit balances per issuer and per holder. Mint,
transfer and retire are applied under per-account locks and recorded in an
append-only audit log, so that at every observation point

    sum(mint) - sum(retire) == sum(issuer.available) + sum(holder.held)

Each mutation is computed and checked first, then written in one
synchronous step; no await separates the balance writes from the audit
entry, so a concurrent observer never sees a half-applied operation.
"""

import logging
from collections import deque

from bluetrust.anchoring import AnchorError, LedgerAnchor, NullAnchor
from bluetrust.config import EngineSettings
from bluetrust.enums import AccountKind, EntryKind
from bluetrust.errors import InsufficientBalance, InvalidInput, InvariantViolation, NotFound
from bluetrust.locks import LockRegistry
from bluetrust.repositories import HolderRepository, IssuerRepository, LedgerEntryRepository
from bluetrust.types import (
    HolderAccount,
    IssuerAccount,
    LedgerEntry,
    LedgerReceipt,
    SupplySnapshot,
)


logger = logging.getLogger(__name__)


def check_amount(amount: int, what: str = "Amount") -> None:
    """
    Validate a credit amount

    Raises:
        InvalidInput: amount is not a positive integer
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInput(f"{what} must be an integer", amount=amount)
    if amount <= 0:
        raise InvalidInput(f"{what} must be positive", amount=amount)


class CreditLedger:
    """Credit balances, audit log and anchoring"""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        locks: LockRegistry | None = None,
        anchor: LedgerAnchor | None = None,
    ):
        self.settings = settings if settings is not None else EngineSettings()
        self.locks = locks if locks is not None else LockRegistry()
        self.anchor = anchor if anchor is not None else NullAnchor()
        self.issuers = IssuerRepository()
        self.holders = HolderRepository()
        self.entries = LedgerEntryRepository()
        self.anchor_failures: deque[tuple[int, str]] = deque(maxlen=self.settings.anchor_failure_history)

    # ============================================================================
    # Accounts
    # ============================================================================

    def open_issuer(
        self,
        issuer_id: str,
        name: str,
        unit_price: int | None = None,
        rating: float = 0.0,
        region: str | None = None,
        registration_number: str | None = None,
    ) -> IssuerAccount:
        """
        Open an issuer account with a zero balance

        Args:
            issuer_id: Unique account id (shared namespace with holders)
            name: Organization name
            unit_price: Listed price per credit (default: settings.default_unit_price)
            rating: Marketplace rating 0-5
            region: Home region
            registration_number: Registry number of the organization

        Raises:
            InvalidInput: Duplicate id, empty name, price or rating out of range
        """
        self._check_new_account(issuer_id, name)
        price = self.settings.default_unit_price if unit_price is None else unit_price
        self.check_price(price)
        if not 0 <= rating <= 5:
            raise InvalidInput("Rating must be within [0, 5]", rating=rating)

        issuer = IssuerAccount(
            id=issuer_id,
            name=name,
            unit_price=price,
            rating=rating,
            region=region,
            registration_number=registration_number,
        )
        self.issuers.create(issuer)
        logger.info(f"Issuer account opened: {issuer_id}")
        return issuer

    def open_holder(self, holder_id: str, name: str, target_offset: int = 0) -> HolderAccount:
        """
        Open a holder account with a zero balance

        Raises:
            InvalidInput: Duplicate id, empty name or negative target
        """
        self._check_new_account(holder_id, name)
        if isinstance(target_offset, bool) or not isinstance(target_offset, int) or target_offset < 0:
            raise InvalidInput("Target offset must be a non-negative integer", target_offset=target_offset)

        holder = HolderAccount(id=holder_id, name=name, target_offset=target_offset)
        self.holders.create(holder)
        logger.info(f"Holder account opened: {holder_id}")
        return holder

    def get_issuer(self, issuer_id: str) -> IssuerAccount:
        issuer = self.issuers.get(issuer_id)
        if issuer is None:
            raise NotFound(f"Issuer {issuer_id} not found", issuer_id=issuer_id)
        return issuer

    def get_holder(self, holder_id: str) -> HolderAccount:
        holder = self.holders.get(holder_id)
        if holder is None:
            raise NotFound(f"Holder {holder_id} not found", holder_id=holder_id)
        return holder

    def check_price(self, price: int) -> None:
        """
        Validate a unit price against the configured range

        Raises:
            InvalidInput: price is not an integer within [min_unit_price, max_unit_price]
        """
        low, high = self.settings.min_unit_price, self.settings.max_unit_price
        if isinstance(price, bool) or not isinstance(price, int) or not low <= price <= high:
            raise InvalidInput(
                f"Price must be between {low:,} and {high:,}", price=price, min_price=low, max_price=high
            )

    def _check_new_account(self, account_id: str, name: str) -> None:
        if not account_id or not account_id.strip():
            raise InvalidInput("Account id must not be empty")
        if not name or not name.strip():
            raise InvalidInput("Account name must not be empty", account_id=account_id)
        if self.issuers.exists(account_id) or self.holders.exists(account_id):
            raise InvalidInput(f"Account {account_id} already exists", account_id=account_id)

    # ============================================================================
    # Locked operations
    # ============================================================================

    async def mint(self, issuer_id: str, amount: int, reference: str | None = None) -> LedgerReceipt:
        """
        Mint new credits into an issuer's available balance

        Raises:
            InvalidInput: amount is not a positive integer
            NotFound: Unknown issuer
        """
        check_amount(amount)
        self.get_issuer(issuer_id)
        async with self.locks.hold((AccountKind.ISSUER, issuer_id)):
            entry = self.apply_mint(issuer_id, amount, reference)
        return await self.publish(entry)

    async def transfer(
        self, issuer_id: str, holder_id: str, amount: int, unit_price: int | None = None
    ) -> LedgerReceipt:
        """
        Move credits from an issuer's available balance to a holder

        Raises:
            InvalidInput: amount is not a positive integer
            NotFound: Unknown issuer or holder
            InsufficientBalance: amount exceeds the issuer's available balance
        """
        check_amount(amount)
        self.get_issuer(issuer_id)
        self.get_holder(holder_id)
        async with self.locks.hold((AccountKind.ISSUER, issuer_id), (AccountKind.HOLDER, holder_id)):
            entry = self.apply_transfer(issuer_id, holder_id, amount, unit_price)
        return await self.publish(entry)

    async def retire(self, holder_id: str, amount: int, reason: str) -> LedgerReceipt:
        """
        Permanently remove held credits from circulation

        Raises:
            InvalidInput: amount is not a positive integer
            NotFound: Unknown holder
            InsufficientBalance: amount exceeds the holder's held balance
        """
        check_amount(amount)
        self.get_holder(holder_id)
        async with self.locks.hold((AccountKind.HOLDER, holder_id)):
            entry = self.apply_retire(holder_id, amount, reason)
        return await self.publish(entry)

    # ============================================================================
    # Commit steps (caller holds the account locks)
    # ============================================================================

    def apply_mint(self, issuer_id: str, amount: int, reference: str | None = None) -> LedgerEntry:
        """Apply a mint. The caller must hold the issuer lock."""
        check_amount(amount)
        issuer = self.get_issuer(issuer_id)
        updated = issuer.model_copy(
            update={"total_minted": issuer.total_minted + amount, "available": issuer.available + amount}
        )
        self._verify_issuer(updated, EntryKind.MINT)

        entry = LedgerEntry(
            sequence=self.entries.next_sequence,
            kind=EntryKind.MINT,
            amount=amount,
            destination=issuer_id,
            reference=reference,
        )
        self.issuers.update(updated)
        self.entries.append(entry)
        logger.info(f"Minted {amount} credits to {issuer_id} (ref={reference})")
        return entry

    def apply_transfer(
        self, issuer_id: str, holder_id: str, amount: int, unit_price: int | None = None
    ) -> LedgerEntry:
        """Apply a transfer. The caller must hold the issuer and holder locks."""
        check_amount(amount)
        issuer = self.get_issuer(issuer_id)
        holder = self.get_holder(holder_id)
        if amount > issuer.available:
            raise InsufficientBalance(
                f"Issuer {issuer_id} has {issuer.available} credits available, {amount} requested",
                issuer_id=issuer_id,
                available=issuer.available,
                requested=amount,
            )

        updated_issuer = issuer.model_copy(
            update={"available": issuer.available - amount, "total_sold": issuer.total_sold + amount}
        )
        updated_holder = holder.model_copy(
            update={"held": holder.held + amount, "purchased": holder.purchased + amount}
        )
        self._verify_issuer(updated_issuer, EntryKind.TRANSFER)
        self._verify_holder(updated_holder, EntryKind.TRANSFER)

        entry = LedgerEntry(
            sequence=self.entries.next_sequence,
            kind=EntryKind.TRANSFER,
            amount=amount,
            source=issuer_id,
            destination=holder_id,
            unit_price=unit_price,
            total_cost=amount * unit_price if unit_price is not None else None,
        )
        self.issuers.update(updated_issuer)
        self.holders.update(updated_holder)
        self.entries.append(entry)
        logger.info(f"Transferred {amount} credits from {issuer_id} to {holder_id}")
        return entry

    def apply_retire(self, holder_id: str, amount: int, reason: str) -> LedgerEntry:
        """Apply a retirement. The caller must hold the holder lock."""
        check_amount(amount)
        if not reason or not reason.strip():
            raise InvalidInput("Retirement reason must not be empty", holder_id=holder_id)
        holder = self.get_holder(holder_id)
        if amount > holder.held:
            raise InsufficientBalance(
                f"Holder {holder_id} holds {holder.held} credits, {amount} requested",
                holder_id=holder_id,
                held=holder.held,
                requested=amount,
            )

        updated = holder.model_copy(update={"held": holder.held - amount, "retired": holder.retired + amount})
        self._verify_holder(updated, EntryKind.RETIRE)

        entry = LedgerEntry(
            sequence=self.entries.next_sequence,
            kind=EntryKind.RETIRE,
            amount=amount,
            source=holder_id,
            reason=reason,
        )
        self.holders.update(updated)
        self.entries.append(entry)
        logger.info(f"Retired {amount} credits held by {holder_id}: {reason}")
        return entry

    async def publish(self, entry: LedgerEntry) -> LedgerReceipt:
        """
        Mirror a committed entry to the anchor.

        Failures are logged and reported on the receipt; the local entry
        stays committed. Only the most recent failures are kept.
        """
        try:
            anchor_ref = await self.anchor.anchor(entry)
        except AnchorError as e:
            logger.warning(f"Anchoring of ledger entry {entry.sequence} failed: {str(e)}")
            return self._anchor_failed(entry, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error anchoring ledger entry {entry.sequence}: {str(e)}")
            return self._anchor_failed(entry, f"{type(e).__name__}: {str(e)}")

        if anchor_ref:
            entry = entry.model_copy(update={"anchor_ref": anchor_ref})
            self.entries.replace(entry)
        return LedgerReceipt(entry=entry)

    def _anchor_failed(self, entry: LedgerEntry, error: str) -> LedgerReceipt:
        self.anchor_failures.append((entry.sequence, error))
        return LedgerReceipt(entry=entry, anchor_error=error)

    # ============================================================================
    # Invariants
    # ============================================================================

    def _verify_issuer(self, issuer: IssuerAccount, kind: EntryKind) -> None:
        if issuer.available < 0 or issuer.total_sold < 0 or issuer.available > issuer.total_minted - issuer.total_sold:
            self._violation(
                f"{kind.value} would leave issuer {issuer.id} inconsistent",
                issuer_id=issuer.id,
                available=issuer.available,
                total_minted=issuer.total_minted,
                total_sold=issuer.total_sold,
            )

    def _verify_holder(self, holder: HolderAccount, kind: EntryKind) -> None:
        if holder.held < 0 or holder.retired < 0:
            self._violation(
                f"{kind.value} would leave holder {holder.id} inconsistent",
                holder_id=holder.id,
                held=holder.held,
                retired=holder.retired,
            )

    def _violation(self, message: str, **context) -> None:
        logger.error(f"Invariant violation: {message} {context}")
        raise InvariantViolation(message, **context)

    def supply(self) -> SupplySnapshot:
        """Ledger totals from the audit log and current balances"""
        minted = self.entries.total(EntryKind.MINT)
        retired = self.entries.total(EntryKind.RETIRE)
        issuer_available = sum(issuer.available for issuer in self.issuers)
        holder_held = sum(holder.held for holder in self.holders)
        return SupplySnapshot(
            minted=minted,
            retired=retired,
            circulating=minted - retired,
            issuer_available=issuer_available,
            holder_held=holder_held,
        )

    def check_conservation(self) -> SupplySnapshot:
        """
        Verify the conservation law

        Raises:
            InvariantViolation: minted - retired differs from the sum of balances
        """
        snapshot = self.supply()
        if snapshot.circulating != snapshot.issuer_available + snapshot.holder_held:
            self._violation(
                "Circulating supply differs from account balances",
                circulating=snapshot.circulating,
                issuer_available=snapshot.issuer_available,
                holder_held=snapshot.holder_held,
            )
        return snapshot
