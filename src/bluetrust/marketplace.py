"""
Marketplace

Turns buy requests into ledger transfers. Purchases against one issuer
settle in the order they acquire the issuer's lock; a purchase that exceeds
the balance left by earlier ones fails entirely (no partial fills).
"""

import logging
from typing import Iterable, Iterator

from bluetrust.enums import AccountKind
from bluetrust.errors import InsufficientBalance, InvalidInput, InvalidQuantity
from bluetrust.ledger import CreditLedger
from bluetrust.types import IssuerAccount, Listing, PurchaseReceipt


logger = logging.getLogger(__name__)


def listing_order(issuer: IssuerAccount) -> tuple:
    """Rating descending, then price ascending, then id for a stable tie-break"""
    return (-issuer.rating, issuer.unit_price, issuer.id)


class Listings(Iterable[Listing]):
    """
    Restartable view of the marketplace.

    Each iteration takes a fresh snapshot of issuer balances and yields
    listings lazily.
    """

    def __init__(self, ledger: CreditLedger):
        self._ledger = ledger

    def __iter__(self) -> Iterator[Listing]:
        issuers = sorted((i for i in self._ledger.issuers if i.available > 0), key=listing_order)
        for issuer in issuers:
            yield Listing(
                issuer_id=issuer.id,
                name=issuer.name,
                available=issuer.available,
                unit_price=issuer.unit_price,
                rating=issuer.rating,
            )


class Marketplace:
    """Listing, pricing and purchase settlement"""

    def __init__(self, ledger: CreditLedger):
        self.ledger = ledger
        self.locks = ledger.locks

    def list_available(self) -> Listings:
        return Listings(self.ledger)

    def quote(self, issuer_id: str, quantity: int) -> int:
        """
        Total cost of buying quantity credits from an issuer at its current price

        Raises:
            NotFound: Unknown issuer
            InvalidQuantity: quantity is not a positive integer
        """
        self._check_quantity(quantity)
        return quantity * self.ledger.get_issuer(issuer_id).unit_price

    async def purchase(self, holder_id: str, issuer_id: str, quantity: int) -> PurchaseReceipt:
        """
        Buy credits from an issuer

        Args:
            holder_id: Buying holder
            issuer_id: Selling issuer
            quantity: Number of credits (1 <= quantity <= available)

        Returns:
            Receipt with the settled price and post-trade balances

        Raises:
            NotFound: Unknown holder or issuer
            InvalidQuantity: quantity is not a positive integer
            InsufficientBalance: quantity exceeds the issuer's available balance
        """
        self._check_quantity(quantity)
        self.ledger.get_holder(holder_id)
        self.ledger.get_issuer(issuer_id)

        async with self.locks.hold((AccountKind.ISSUER, issuer_id), (AccountKind.HOLDER, holder_id)):
            issuer = self.ledger.get_issuer(issuer_id)
            if quantity > issuer.available:
                raise InsufficientBalance(
                    f"Only {issuer.available} credits available from {issuer_id}, {quantity} requested",
                    issuer_id=issuer_id,
                    available=issuer.available,
                    requested=quantity,
                )
            unit_price = issuer.unit_price
            entry = self.ledger.apply_transfer(issuer_id, holder_id, quantity, unit_price)
            issuer_available = self.ledger.get_issuer(issuer_id).available
            holder_held = self.ledger.get_holder(holder_id).held

        logger.info(f"{holder_id} bought {quantity} credits from {issuer_id} for {quantity * unit_price:,}")
        receipt = await self.ledger.publish(entry)
        return PurchaseReceipt(
            holder_id=holder_id,
            issuer_id=issuer_id,
            quantity=quantity,
            unit_price=unit_price,
            total_cost=quantity * unit_price,
            issuer_available=issuer_available,
            holder_held=holder_held,
            entry=receipt.entry,
            anchor_error=receipt.anchor_error,
        )

    async def set_unit_price(self, issuer_id: str, price: int) -> IssuerAccount:
        """
        Change an issuer's listed price

        Raises:
            NotFound: Unknown issuer
            InvalidInput: price outside the configured range (price unchanged)
        """
        self.ledger.get_issuer(issuer_id)
        self.ledger.check_price(price)
        async with self.locks.hold((AccountKind.ISSUER, issuer_id)):
            issuer = self.ledger.get_issuer(issuer_id)
            updated = self.ledger.issuers.update(issuer.model_copy(update={"unit_price": price}))
        logger.info(f"Unit price of {issuer_id} set to {price:,}")
        return updated

    async def set_rating(self, issuer_id: str, rating: float) -> IssuerAccount:
        """
        Change an issuer's marketplace rating

        Raises:
            NotFound: Unknown issuer
            InvalidInput: rating outside [0, 5]
        """
        self.ledger.get_issuer(issuer_id)
        if isinstance(rating, bool) or not isinstance(rating, (int, float)) or not 0 <= rating <= 5:
            raise InvalidInput("Rating must be within [0, 5]", rating=rating)
        async with self.locks.hold((AccountKind.ISSUER, issuer_id)):
            issuer = self.ledger.get_issuer(issuer_id)
            updated = self.ledger.issuers.update(issuer.model_copy(update={"rating": float(rating)}))
        return updated

    def _check_quantity(self, quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidQuantity("Quantity must be a positive integer", quantity=quantity)
