"""
Tests for the credit ledger

Covers account opening, mint/transfer/retire, the conservation law and
best-effort anchoring.
"""

import httpx
import pytest

from bluetrust.anchoring import AnchorError, HttpLedgerAnchor, InMemoryAnchor, entry_digest
from bluetrust.config import EngineSettings
from bluetrust.enums import EntryKind
from bluetrust.errors import InsufficientBalance, InvalidInput, InvariantViolation, NotFound
from bluetrust.ledger import CreditLedger, check_amount
from tests.mocks import CrashingAnchor, FailingAnchor


@pytest.fixture
def fresh_ledger():
    ledger = CreditLedger(EngineSettings())
    ledger.open_issuer("NGO001", "Coastal Conservation Society")
    ledger.open_holder("CMP001", "Tata Steel Ltd", target_offset=50)
    return ledger


class TestAccounts:
    """Opening and reading accounts"""

    def test_issuer_defaults(self, fresh_ledger):
        issuer = fresh_ledger.get_issuer("NGO001")
        assert issuer.available == 0
        assert issuer.total_minted == 0
        assert issuer.unit_price == 2500

    def test_ids_unique_across_kinds(self, fresh_ledger):
        with pytest.raises(InvalidInput):
            fresh_ledger.open_holder("NGO001", "Impostor")
        with pytest.raises(InvalidInput):
            fresh_ledger.open_issuer("CMP001", "Impostor")

    def test_price_out_of_range(self, fresh_ledger):
        with pytest.raises(InvalidInput) as exc_info:
            fresh_ledger.open_issuer("NGO002", "Cheap Credits", unit_price=999)
        assert exc_info.value.context["min_price"] == 1000
        assert not fresh_ledger.issuers.exists("NGO002")

    def test_empty_name(self, fresh_ledger):
        with pytest.raises(InvalidInput):
            fresh_ledger.open_issuer("NGO002", "  ")

    def test_negative_target_offset(self, fresh_ledger):
        with pytest.raises(InvalidInput):
            fresh_ledger.open_holder("CMP002", "Infosys", target_offset=-5)

    def test_unknown_accounts(self, fresh_ledger):
        with pytest.raises(NotFound):
            fresh_ledger.get_issuer("NGO999")
        with pytest.raises(NotFound):
            fresh_ledger.get_holder("CMP999")


class TestCheckAmount:
    """Amount validation"""

    @pytest.mark.parametrize("amount", [0, -1, 2.5, True, "10"])
    def test_rejected(self, amount):
        with pytest.raises(InvalidInput):
            check_amount(amount)

    def test_accepted(self):
        check_amount(1)


class TestLedgerOperations:
    """Mint, transfer and retire"""

    @pytest.mark.asyncio
    async def test_mint(self, fresh_ledger):
        receipt = await fresh_ledger.mint("NGO001", 44, reference="PRJ001")

        issuer = fresh_ledger.get_issuer("NGO001")
        assert issuer.available == 44
        assert issuer.total_minted == 44
        assert receipt.entry.kind == EntryKind.MINT
        assert receipt.entry.destination == "NGO001"
        assert receipt.entry.source is None
        assert receipt.entry.reference == "PRJ001"
        assert receipt.anchor_error is None

    @pytest.mark.asyncio
    async def test_transfer(self, fresh_ledger):
        await fresh_ledger.mint("NGO001", 45)

        receipt = await fresh_ledger.transfer("NGO001", "CMP001", 30, unit_price=2500)

        assert fresh_ledger.get_issuer("NGO001").available == 15
        assert fresh_ledger.get_issuer("NGO001").total_sold == 30
        holder = fresh_ledger.get_holder("CMP001")
        assert holder.held == 30
        assert holder.purchased == 30
        assert receipt.entry.total_cost == 75000

    @pytest.mark.asyncio
    async def test_transfer_beyond_available(self, fresh_ledger):
        await fresh_ledger.mint("NGO001", 10)

        with pytest.raises(InsufficientBalance) as exc_info:
            await fresh_ledger.transfer("NGO001", "CMP001", 11)

        assert exc_info.value.context["available"] == 10
        assert fresh_ledger.get_issuer("NGO001").available == 10
        assert fresh_ledger.get_holder("CMP001").held == 0
        assert len(fresh_ledger.entries) == 1

    @pytest.mark.asyncio
    async def test_retire_all_then_one_more(self, fresh_ledger):
        await fresh_ledger.mint("NGO001", 10)
        await fresh_ledger.transfer("NGO001", "CMP001", 10)

        receipt = await fresh_ledger.retire("CMP001", 10, "FY2025 offset")

        holder = fresh_ledger.get_holder("CMP001")
        assert holder.held == 0
        assert holder.retired == 10
        assert receipt.entry.kind == EntryKind.RETIRE
        assert receipt.entry.reason == "FY2025 offset"

        with pytest.raises(InsufficientBalance):
            await fresh_ledger.retire("CMP001", 1, "FY2025 offset")
        assert fresh_ledger.get_holder("CMP001").retired == 10

    @pytest.mark.asyncio
    async def test_retire_requires_reason(self, fresh_ledger):
        await fresh_ledger.mint("NGO001", 5)
        await fresh_ledger.transfer("NGO001", "CMP001", 5)

        with pytest.raises(InvalidInput):
            await fresh_ledger.retire("CMP001", 1, "")

    @pytest.mark.asyncio
    async def test_unknown_account(self, fresh_ledger):
        with pytest.raises(NotFound):
            await fresh_ledger.mint("NGO999", 5)
        with pytest.raises(NotFound):
            await fresh_ledger.retire("CMP999", 5, "offset")

    @pytest.mark.asyncio
    async def test_conservation_over_sequence(self, fresh_ledger):
        fresh_ledger.open_issuer("NGO002", "Mangrove Trust")
        fresh_ledger.open_holder("CMP002", "Infosys")

        await fresh_ledger.mint("NGO001", 44)
        await fresh_ledger.mint("NGO002", 20)
        await fresh_ledger.transfer("NGO001", "CMP001", 30)
        await fresh_ledger.transfer("NGO002", "CMP002", 20)
        await fresh_ledger.retire("CMP001", 12, "Q1 offset")
        await fresh_ledger.transfer("NGO001", "CMP002", 14)
        await fresh_ledger.retire("CMP002", 34, "Annual offset")

        supply = fresh_ledger.check_conservation()
        assert supply.minted == 64
        assert supply.retired == 46
        assert supply.circulating == 18
        assert supply.issuer_available + supply.holder_held == 18

    @pytest.mark.asyncio
    async def test_entries_by_account(self, fresh_ledger):
        await fresh_ledger.mint("NGO001", 10)
        await fresh_ledger.transfer("NGO001", "CMP001", 4)
        await fresh_ledger.retire("CMP001", 1, "offset")

        assert [e.sequence for e in fresh_ledger.entries.query("CMP001")] == [2, 3]
        assert [e.kind for e in fresh_ledger.entries.query("NGO001")] == [EntryKind.MINT, EntryKind.TRANSFER]
        assert len(fresh_ledger.entries.query(kind=EntryKind.RETIRE)) == 1


class TestInvariants:
    """Corrupted balances are detected before anything is committed"""

    @pytest.fixture
    def minted_ledger(self, fresh_ledger):
        fresh_ledger.apply_mint("NGO001", 10)
        return fresh_ledger

    def corrupt_issuer(self, ledger, **changes):
        issuer = ledger.get_issuer("NGO001")
        ledger.issuers.update(issuer.model_copy(update=changes))

    def corrupt_holder(self, ledger, **changes):
        holder = ledger.get_holder("CMP001")
        ledger.holders.update(holder.model_copy(update=changes))

    def test_conservation_detects_phantom_credits(self, minted_ledger):
        minted_ledger.check_conservation()
        self.corrupt_issuer(minted_ledger, available=15)

        with pytest.raises(InvariantViolation) as exc_info:
            minted_ledger.check_conservation()

        assert exc_info.value.context["circulating"] == 10
        assert exc_info.value.context["issuer_available"] == 15

    def test_mint_on_corrupted_issuer_commits_nothing(self, minted_ledger):
        self.corrupt_issuer(minted_ledger, available=15)

        with pytest.raises(InvariantViolation):
            minted_ledger.apply_mint("NGO001", 1)

        issuer = minted_ledger.get_issuer("NGO001")
        assert issuer.available == 15
        assert issuer.total_minted == 10
        assert len(minted_ledger.entries) == 1

    def test_transfer_to_corrupted_holder_commits_nothing(self, minted_ledger):
        self.corrupt_holder(minted_ledger, held=-8)

        with pytest.raises(InvariantViolation) as exc_info:
            minted_ledger.apply_transfer("NGO001", "CMP001", 5)

        assert exc_info.value.context["holder_id"] == "CMP001"
        assert minted_ledger.get_issuer("NGO001").available == 10
        assert minted_ledger.get_holder("CMP001").held == -8
        assert len(minted_ledger.entries) == 1

    @pytest.mark.asyncio
    async def test_locked_operation_surfaces_violation(self, minted_ledger):
        self.corrupt_issuer(minted_ledger, available=15)

        with pytest.raises(InvariantViolation):
            await minted_ledger.transfer("NGO001", "CMP001", 1)

        assert minted_ledger.get_holder("CMP001").held == 0
        assert len(minted_ledger.entries) == 1


class TestAnchoring:
    """Best-effort mirroring of committed entries"""

    @pytest.mark.asyncio
    async def test_in_memory_anchor_sets_reference(self):
        anchor = InMemoryAnchor()
        ledger = CreditLedger(EngineSettings(), anchor=anchor)
        ledger.open_issuer("NGO001", "Coastal Conservation Society")

        receipt = await ledger.mint("NGO001", 10)

        assert receipt.entry.anchor_ref == entry_digest(receipt.entry)
        assert len(receipt.entry.anchor_ref) == 64
        assert ledger.entries.query()[0].anchor_ref == receipt.entry.anchor_ref
        assert receipt.entry.anchor_ref in anchor.entries

    @pytest.mark.asyncio
    async def test_anchor_failure_keeps_entry(self):
        anchor = FailingAnchor()
        ledger = CreditLedger(EngineSettings(), anchor=anchor)
        ledger.open_issuer("NGO001", "Coastal Conservation Society")

        receipt = await ledger.mint("NGO001", 10)

        assert receipt.anchor_error == "Gateway unreachable"
        assert receipt.entry.anchor_ref is None
        assert ledger.get_issuer("NGO001").available == 10
        assert len(ledger.entries) == 1
        assert list(ledger.anchor_failures) == [(1, "Gateway unreachable")]
        ledger.check_conservation()

    @pytest.mark.asyncio
    async def test_unexpected_anchor_error_keeps_entry(self):
        ledger = CreditLedger(EngineSettings(), anchor=CrashingAnchor())
        ledger.open_issuer("NGO001", "Coastal Conservation Society")

        receipt = await ledger.mint("NGO001", 10)

        assert receipt.anchor_error == "RuntimeError: connection pool closed"
        assert ledger.get_issuer("NGO001").available == 10
        assert len(ledger.entries) == 1

    @pytest.mark.asyncio
    async def test_anchor_failure_history_is_bounded(self):
        ledger = CreditLedger(EngineSettings(anchor_failure_history=2), anchor=FailingAnchor())
        ledger.open_issuer("NGO001", "Coastal Conservation Society")

        for _ in range(3):
            await ledger.mint("NGO001", 1)

        assert [sequence for sequence, _ in ledger.anchor_failures] == [2, 3]
        assert len(ledger.entries) == 3

    @pytest.mark.asyncio
    async def test_http_anchor(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/entries"
            return httpx.Response(200, json={"tx_hash": "ab" * 32})

        ledger = CreditLedger(
            EngineSettings(),
            anchor=HttpLedgerAnchor("https://anchor.test", transport=httpx.MockTransport(handler)),
        )
        ledger.open_issuer("NGO001", "Coastal Conservation Society")

        receipt = await ledger.mint("NGO001", 10)

        assert receipt.entry.anchor_ref == "ab" * 32

    @pytest.mark.asyncio
    async def test_http_anchor_errors(self):
        anchor = HttpLedgerAnchor(
            "https://anchor.test", transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        )
        ledger = CreditLedger(EngineSettings())
        ledger.open_issuer("NGO001", "Coastal Conservation Society")
        entry = ledger.apply_mint("NGO001", 1)

        with pytest.raises(AnchorError):
            await anchor.anchor(entry)
