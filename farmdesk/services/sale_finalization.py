"""
Sale finalization service.

Turns a cart into a persisted sale in one unit of work:
- Validates every cart line against live stock (first failing line wins)
- Snapshots the current unit price into each sale item
- Decrements stock and inserts the sale header and items
- Commits only when every line succeeded; any failure leaves the store untouched

The service owns no global state. It is built once at startup around a
`SaleStore` and shared by request handlers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from farmdesk.repositories.sale_store import (
    ProductSnapshot,
    SaleItemDraft,
    SaleStore,
    SaleStoreTransaction,
    StorageError,
)

logger = logging.getLogger(__name__)

SALE_STATUS_FINALIZED = "finalized"


# =========================================================
# INPUT / OUTPUT
# =========================================================

@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: int
    quantity: int


@dataclass(frozen=True, slots=True)
class FinalizedSaleItem:
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True, slots=True)
class FinalizedSale:
    sale_id: int
    total_amount: Decimal
    sale_date: datetime
    items: Tuple[FinalizedSaleItem, ...]


# =========================================================
# ERRORS
# =========================================================

class SaleFinalizationError(Exception):
    """Base class. `code` is stable, `message` is safe to show to end users."""

    code = "sale_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptyCart(SaleFinalizationError):
    code = "empty_cart"

    def __init__(self):
        super().__init__("No items in the sale. Add products to finalize.")


class InvalidQuantity(SaleFinalizationError):
    code = "invalid_quantity"

    def __init__(self, product_id: int, quantity: int):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(
            f"Quantity for product {product_id} must be greater than zero (got {quantity})."
        )


class CustomerNotFound(SaleFinalizationError):
    code = "customer_not_found"

    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Customer with ID {customer_id} not found.")


class ProductNotFound(SaleFinalizationError):
    code = "product_not_found"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found.")


class InsufficientStock(SaleFinalizationError):
    code = "insufficient_stock"

    def __init__(
        self,
        product_id: int,
        available: int,
        requested: int,
        product_name: Optional[str] = None,
    ):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        self.product_name = product_name
        label = product_name or f"ID {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: available {available}, requested {requested}."
        )


class FinalizationTimeout(SaleFinalizationError):
    code = "timeout"

    def __init__(self):
        super().__init__("The sale could not be completed in time. Nothing was charged; please retry.")


class UnexpectedStorageFailure(SaleFinalizationError):
    code = "storage_failure"

    def __init__(self):
        super().__init__("Unable to complete sale")


# =========================================================
# SERVICE
# =========================================================

class SaleFinalizationService:
    def __init__(self, store: SaleStore):
        self._store = store

    def finalize_sale(
        self,
        actor_id: int,
        customer_id: Optional[int],
        lines: Iterable[CartLine],
        deadline: Optional[float] = None,
    ) -> FinalizedSale:
        """
        Finalize a sale for `actor_id` (already authenticated).

        Args:
            actor_id: User performing the sale
            customer_id: Buyer, or None for a walk-in sale
            lines: Cart lines, processed in order
            deadline: Optional `time.monotonic()` value after which the
                transaction is abandoned and rolled back

        Returns:
            FinalizedSale with the new sale id, total and item snapshots

        Raises:
            SaleFinalizationError subclass describing the first failure. The
            store is unchanged whenever this raises.
        """
        lines = list(lines)

        if not lines:
            raise EmptyCart()

        for line in lines:
            if line.quantity is None or line.quantity <= 0:
                raise InvalidQuantity(line.product_id, line.quantity)

        try:
            with self._store.transaction() as tx:
                result = self._apply(tx, actor_id, customer_id, lines, deadline)
                _check_deadline(deadline)
                tx.commit()

        except SaleFinalizationError as exc:
            logger.info(
                "Sale rejected | user=%s customer=%s reason=%s",
                actor_id,
                customer_id,
                exc.code,
            )
            raise

        except StorageError:
            logger.exception(
                "Sale finalization failed | user=%s customer=%s",
                actor_id,
                customer_id,
            )
            raise UnexpectedStorageFailure() from None

        except Exception:
            # Anything unclassified is already rolled back by the transaction
            logger.exception(
                "Sale finalization crashed | user=%s customer=%s",
                actor_id,
                customer_id,
            )
            raise UnexpectedStorageFailure() from None

        logger.info(
            "Sale finalized | sale_id=%s user=%s items=%s total=%s",
            result.sale_id,
            actor_id,
            len(result.items),
            result.total_amount,
        )

        return result

    def _apply(
        self,
        tx: SaleStoreTransaction,
        actor_id: int,
        customer_id: Optional[int],
        lines: List[CartLine],
        deadline: Optional[float],
    ) -> FinalizedSale:
        if customer_id is not None and not tx.customer_exists(customer_id):
            raise CustomerNotFound(customer_id)

        total_amount = Decimal("0.00")
        drafts: List[SaleItemDraft] = []

        for line in lines:
            _check_deadline(deadline)

            product = tx.get_product_for_update(line.product_id)

            if product is None:
                raise ProductNotFound(line.product_id)

            if line.quantity > product.stock_quantity:
                raise _insufficient(product, line.quantity)

            subtotal = product.price * line.quantity

            if not tx.decrement_stock(product.id, line.quantity):
                # Stock was consumed by a concurrent sale after our read
                current = tx.get_product_for_update(product.id)
                if current is None:
                    raise ProductNotFound(line.product_id)
                raise _insufficient(current, line.quantity)

            total_amount += subtotal

            drafts.append(
                SaleItemDraft(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=product.price,
                    subtotal=subtotal,
                )
            )

        sale_date = datetime.now(timezone.utc)

        sale_id = tx.create_sale(
            customer_id=customer_id,
            user_id=actor_id,
            total_amount=total_amount,
            sale_date=sale_date,
            status=SALE_STATUS_FINALIZED,
        )
        tx.create_sale_items(sale_id, drafts)

        return FinalizedSale(
            sale_id=sale_id,
            total_amount=total_amount,
            sale_date=sale_date,
            items=tuple(
                FinalizedSaleItem(
                    product_id=d.product_id,
                    product_name=d.product_name,
                    quantity=d.quantity,
                    unit_price=d.unit_price,
                    subtotal=d.subtotal,
                )
                for d in drafts
            ),
        )


def _insufficient(product: ProductSnapshot, requested: int) -> InsufficientStock:
    return InsufficientStock(
        product_id=product.id,
        available=product.stock_quantity,
        requested=requested,
        product_name=product.name,
    )


def _check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise FinalizationTimeout()


__all__ = [
    "CartLine",
    "CustomerNotFound",
    "EmptyCart",
    "FinalizationTimeout",
    "FinalizedSale",
    "FinalizedSaleItem",
    "InsufficientStock",
    "InvalidQuantity",
    "ProductNotFound",
    "SaleFinalizationError",
    "SaleFinalizationService",
    "UnexpectedStorageFailure",
]
