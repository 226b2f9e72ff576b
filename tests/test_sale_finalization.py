"""
Tests for `farmdesk/services/sale_finalization.py`.

Covers:
- Successful finalization (stock decremented, totals, item snapshots)
- All-or-nothing rollback for every failure kind
- First failing line is the one reported
- Price snapshots survive later price changes
- Two finalizations racing for the last unit
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from farmdesk.database import Base
from farmdesk.models.products import Product
from farmdesk.models.sale_items import SaleItem
from farmdesk.models.sales import Sale
from farmdesk.models.users import User
from farmdesk.repositories.sale_store import SaleStore, SaleStoreTransaction, SqlAlchemySaleStore
from farmdesk.services.sale_finalization import (
    CartLine,
    CustomerNotFound,
    EmptyCart,
    FinalizationTimeout,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    SaleFinalizationService,
    UnexpectedStorageFailure,
)


def _stock(session_factory, product_id):
    with session_factory() as session:
        return session.get(Product, product_id).stock_quantity


def _count(session_factory, model):
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(model))


class _HookedTransaction(SaleStoreTransaction):
    """Delegates to a real transaction, running hooks around chosen calls."""

    def __init__(self, inner, after_first_read=None, items_error=None):
        self.inner = inner
        self.after_first_read = after_first_read
        self.items_error = items_error

    def customer_exists(self, customer_id):
        return self.inner.customer_exists(customer_id)

    def get_product_for_update(self, product_id):
        product = self.inner.get_product_for_update(product_id)
        if self.after_first_read is not None:
            hook, self.after_first_read = self.after_first_read, None
            hook()
        return product

    def decrement_stock(self, product_id, quantity):
        return self.inner.decrement_stock(product_id, quantity)

    def create_sale(self, **kwargs):
        return self.inner.create_sale(**kwargs)

    def create_sale_items(self, sale_id, items):
        if self.items_error is not None:
            raise self.items_error
        return self.inner.create_sale_items(sale_id, items)

    def commit(self):
        self.inner.commit()

    def rollback(self):
        self.inner.rollback()


class _HookedStore(SaleStore):
    def __init__(self, inner, **hooks):
        self.inner = inner
        self.hooks = hooks

    @contextmanager
    def transaction(self):
        with self.inner.transaction() as tx:
            yield _HookedTransaction(tx, **self.hooks)


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------


def test_single_line_sale_decrements_stock_and_records_totals(
    finalizer, session_factory, operator, make_product
):
    product = make_product(price="5.00", stock=10)

    result = finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 3)])

    assert result.total_amount == Decimal("15.00")
    assert _stock(session_factory, product.id) == 7

    with session_factory() as session:
        sale = session.get(Sale, result.sale_id)
        assert sale.total_amount == Decimal("15.00")
        assert sale.user_id == operator.id
        assert sale.customer_id is None
        assert sale.status == "finalized"
        assert sale.sale_date is not None
        assert len(sale.items) == 1
        assert sale.items[0].subtotal == Decimal("15.00")
        assert sale.items[0].unit_price == Decimal("5.00")
        assert sale.items[0].product_name == product.name


def test_total_equals_sum_of_subtotals(finalizer, session_factory, operator, make_product, make_customer):
    apples = make_product(name="Apples", price="2.35", stock=50)
    eggs = make_product(name="Eggs", price="0.40", stock=120)
    honey = make_product(name="Honey", price="12.90", stock=4)
    customer = make_customer()

    result = finalizer.finalize_sale(
        operator.id,
        customer.id,
        [CartLine(apples.id, 7), CartLine(eggs.id, 30), CartLine(honey.id, 1)],
    )

    with session_factory() as session:
        sale = session.get(Sale, result.sale_id)
        assert sale.customer_id == customer.id
        assert sale.total_amount == sum(item.subtotal for item in sale.items)
        for item in sale.items:
            assert item.subtotal == item.unit_price * item.quantity

    assert result.total_amount == Decimal("2.35") * 7 + Decimal("0.40") * 30 + Decimal("12.90")


def test_repeated_product_lines_each_consume_stock(finalizer, session_factory, operator, make_product):
    product = make_product(stock=5)

    finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 2), CartLine(product.id, 3)])

    assert _stock(session_factory, product.id) == 0
    assert _count(session_factory, SaleItem) == 2


def test_price_change_after_sale_keeps_snapshot(finalizer, session_factory, operator, make_product):
    product = make_product(price="5.00", stock=10)
    result = finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 2)])

    with session_factory() as session:
        session.get(Product, product.id).price = Decimal("9.99")
        session.commit()

    with session_factory() as session:
        item = session.execute(select(SaleItem).where(SaleItem.sale_id == result.sale_id)).scalar_one()
        assert item.unit_price == Decimal("5.00")
        assert item.subtotal == Decimal("10.00")


# ---------------------------------------------------------------------------
# Rejections (store must be left untouched)
# ---------------------------------------------------------------------------


def test_empty_cart_is_rejected_every_time(finalizer, session_factory, operator):
    for _ in range(2):
        with pytest.raises(EmptyCart):
            finalizer.finalize_sale(operator.id, None, [])

    assert _count(session_factory, Sale) == 0
    assert _count(session_factory, SaleItem) == 0


def test_non_positive_quantity_is_rejected(finalizer, session_factory, operator, make_product):
    product = make_product(stock=10)

    with pytest.raises(InvalidQuantity) as excinfo:
        finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 1), CartLine(product.id, 0)])

    assert excinfo.value.quantity == 0
    assert _stock(session_factory, product.id) == 10


def test_insufficient_stock_reports_available_and_requested(
    finalizer, session_factory, operator, make_product
):
    product = make_product(stock=2)

    with pytest.raises(InsufficientStock) as excinfo:
        finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 5)])

    assert excinfo.value.product_id == product.id
    assert excinfo.value.available == 2
    assert excinfo.value.requested == 5
    assert "available 2, requested 5" in excinfo.value.message
    assert _stock(session_factory, product.id) == 2
    assert _count(session_factory, Sale) == 0


def test_missing_product_rolls_back_earlier_lines(finalizer, session_factory, operator, make_product):
    product = make_product(stock=10)

    with pytest.raises(ProductNotFound) as excinfo:
        finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 1), CartLine(9999, 1)])

    assert excinfo.value.product_id == 9999
    assert _stock(session_factory, product.id) == 10
    assert _count(session_factory, Sale) == 0
    assert _count(session_factory, SaleItem) == 0


def test_first_failing_line_is_reported(finalizer, session_factory, operator, make_product):
    short = make_product(name="Short", stock=1)

    with pytest.raises(InsufficientStock) as excinfo:
        finalizer.finalize_sale(
            operator.id,
            None,
            [CartLine(short.id, 2), CartLine(4242, 1)],
        )

    assert excinfo.value.product_id == short.id


def test_repeated_lines_exceeding_stock_roll_back(finalizer, session_factory, operator, make_product):
    product = make_product(stock=5)

    with pytest.raises(InsufficientStock) as excinfo:
        finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 3), CartLine(product.id, 3)])

    assert excinfo.value.available == 2
    assert _stock(session_factory, product.id) == 5


def test_unknown_customer_is_rejected(finalizer, session_factory, operator, make_product):
    product = make_product(stock=10)

    with pytest.raises(CustomerNotFound):
        finalizer.finalize_sale(operator.id, 777, [CartLine(product.id, 1)])

    assert _stock(session_factory, product.id) == 10


def test_expired_deadline_rolls_back(finalizer, session_factory, operator, make_product):
    product = make_product(stock=10)

    with pytest.raises(FinalizationTimeout):
        finalizer.finalize_sale(
            operator.id,
            None,
            [CartLine(product.id, 1)],
            deadline=time.monotonic() - 1,
        )

    assert _stock(session_factory, product.id) == 10
    assert _count(session_factory, Sale) == 0


def test_storage_error_mid_write_rolls_back(session_factory, operator, make_product):
    product = make_product(stock=10)
    service = SaleFinalizationService(
        _HookedStore(
            SqlAlchemySaleStore(session_factory),
            items_error=OperationalError("INSERT INTO sale_items", {}, Exception("disk I/O error")),
        )
    )

    with pytest.raises(UnexpectedStorageFailure) as excinfo:
        service.finalize_sale(operator.id, None, [CartLine(product.id, 4)])

    assert excinfo.value.message == "Unable to complete sale"
    assert _stock(session_factory, product.id) == 10
    assert _count(session_factory, Sale) == 0
    assert _count(session_factory, SaleItem) == 0


def test_unclassified_error_mid_write_is_generic_failure(session_factory, operator, make_product):
    product = make_product(stock=10)
    service = SaleFinalizationService(
        _HookedStore(SqlAlchemySaleStore(session_factory), items_error=RuntimeError("boom"))
    )

    with pytest.raises(UnexpectedStorageFailure):
        service.finalize_sale(operator.id, None, [CartLine(product.id, 4)])

    assert _stock(session_factory, product.id) == 10
    assert _count(session_factory, Sale) == 0


def test_product_id_beyond_integer_range_is_not_found(finalizer, session_factory, operator, make_product):
    product = make_product(stock=10)

    with pytest.raises(ProductNotFound) as excinfo:
        finalizer.finalize_sale(operator.id, None, [CartLine(product.id, 1), CartLine(2**70, 1)])

    assert excinfo.value.product_id == 2**70
    assert _stock(session_factory, product.id) == 10


def test_customer_id_beyond_integer_range_is_not_found(finalizer, session_factory, operator, make_product):
    product = make_product(stock=10)

    with pytest.raises(CustomerNotFound):
        finalizer.finalize_sale(operator.id, 2**70, [CartLine(product.id, 1)])

    assert _stock(session_factory, product.id) == 10


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


def test_racing_sales_for_last_unit_only_one_wins(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with factory() as session:
        user = User(username="cashier", password_hash="x")
        product = Product(name="Pumpkin", price=Decimal("8.00"), stock_quantity=1)
        session.add_all([user, product])
        session.commit()
        user_id, product_id = user.id, product.id

    competitor = SaleFinalizationService(SqlAlchemySaleStore(factory))
    winners = []

    def competing_sale():
        winners.append(competitor.finalize_sale(user_id, None, [CartLine(product_id, 1)]))

    # The slow sale reads stock 1, then the competitor commits before it writes
    slow = SaleFinalizationService(
        _HookedStore(SqlAlchemySaleStore(factory), after_first_read=competing_sale)
    )

    with pytest.raises(InsufficientStock) as excinfo:
        slow.finalize_sale(user_id, None, [CartLine(product_id, 1)])

    assert len(winners) == 1
    assert excinfo.value.available == 0
    assert excinfo.value.requested == 1
    assert _stock(factory, product_id) == 0
    assert _count(factory, Sale) == 1

    engine.dispose()
