"""
Sale store (persistence) for the finalization engine.

This module provides only the transactional storage operations the engine
needs: product lookup under lock, a guarded stock decrement and the sale
header/item inserts. It does not enforce business rules; those live in
`farmdesk.services.sale_finalization`.

Every operation runs on the transaction handle returned by
`SaleStore.transaction()`. Leaving the `with` block without calling
`commit()` rolls back everything done on the handle.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, ContextManager, Iterator, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farmdesk.models.customers import Customer
from farmdesk.models.products import Product
from farmdesk.models.sale_items import SaleItem
from farmdesk.models.sales import Sale

# Largest value an INTEGER primary key can hold; larger ids cannot match a row
MAX_ROW_ID = 2**31 - 1


class StorageError(Exception):
    """Lower-level persistence failure (connectivity, constraint violation, ...)."""


@dataclass(frozen=True, slots=True)
class ProductSnapshot:
    """Product state as read inside a store transaction."""

    id: int
    name: str
    price: Decimal
    stock_quantity: int


@dataclass(frozen=True, slots=True)
class SaleItemDraft:
    """One line item to insert under a freshly created sale header."""

    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class SaleStoreTransaction(ABC):
    """Storage operations scoped to a single unit of work."""

    @abstractmethod
    def customer_exists(self, customer_id: int) -> bool:
        ...

    @abstractmethod
    def get_product_for_update(self, product_id: int) -> Optional[ProductSnapshot]:
        """Read a product, locking its row until the transaction ends."""

    @abstractmethod
    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """
        Subtract `quantity` from the product's stock if at least that much is left.

        Returns False (and changes nothing) when the stock is short.
        """

    @abstractmethod
    def create_sale(
        self,
        *,
        customer_id: Optional[int],
        user_id: int,
        total_amount: Decimal,
        sale_date: datetime,
        status: str,
    ) -> int:
        """Insert the sale header and return its id."""

    @abstractmethod
    def create_sale_items(self, sale_id: int, items: Sequence[SaleItemDraft]) -> None:
        ...

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...


class SaleStore(ABC):
    @abstractmethod
    def transaction(self) -> ContextManager[SaleStoreTransaction]:
        """Context manager yielding a transaction handle."""


def _storable_id(value: int) -> bool:
    return 0 < value <= MAX_ROW_ID


class _SqlAlchemySaleTransaction(SaleStoreTransaction):
    def __init__(self, session: Session):
        self.session = session
        self.finished = False

    def customer_exists(self, customer_id: int) -> bool:
        if not _storable_id(customer_id):
            return False

        found = self.session.execute(
            select(Customer.id).where(Customer.id == customer_id)
        ).first()
        return found is not None

    def get_product_for_update(self, product_id: int) -> Optional[ProductSnapshot]:
        if not _storable_id(product_id):
            return None

        product = (
            self.session.execute(
                select(Product)
                .where(Product.id == product_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            .scalars()
            .first()
        )

        if product is None:
            return None

        return ProductSnapshot(
            id=product.id,
            name=product.name,
            price=Decimal(product.price),
            stock_quantity=int(product.stock_quantity),
        )

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        # Compare-and-set: engines without row locks still cannot oversell
        result = self.session.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock_quantity >= quantity,
            )
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def create_sale(
        self,
        *,
        customer_id: Optional[int],
        user_id: int,
        total_amount: Decimal,
        sale_date: datetime,
        status: str,
    ) -> int:
        sale = Sale(
            customer_id=customer_id,
            user_id=user_id,
            total_amount=total_amount,
            sale_date=sale_date,
            status=status,
        )
        self.session.add(sale)
        self.session.flush()
        return sale.id

    def create_sale_items(self, sale_id: int, items: Sequence[SaleItemDraft]) -> None:
        self.session.add_all(
            [
                SaleItem(
                    sale_id=sale_id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=item.subtotal,
                )
                for item in items
            ]
        )
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()
        self.finished = True

    def rollback(self) -> None:
        self.session.rollback()
        self.finished = True


class SqlAlchemySaleStore(SaleStore):
    """
    SaleStore backed by a SQLAlchemy session factory.

    Each transaction gets its own Session, so concurrent finalizations never
    share ORM state.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[SaleStoreTransaction]:
        session = self._session_factory()
        tx = _SqlAlchemySaleTransaction(session)

        try:
            yield tx
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc
        finally:
            try:
                if not tx.finished:
                    session.rollback()
            finally:
                session.close()


__all__ = [
    "ProductSnapshot",
    "SaleItemDraft",
    "SaleStore",
    "SaleStoreTransaction",
    "SqlAlchemySaleStore",
    "StorageError",
]
