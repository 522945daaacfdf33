"""
Tests for the Stock Module Service.

Validates:
- Sorting: exact allocation, one-way flip, nothing persisted on rejection
- Sales gated on freshly recomputed availability, itemized shortfalls
- Wastage, returns, adjustments and sorting edits keep stock non-negative
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_kernel.exceptions import (
    InsufficientStockError,
    InvalidAllocationError,
    InvalidSaleError,
    ItemNotFoundError,
    PurchaseAlreadySortedError,
    PurchaseNotFoundError,
    PurchaseNotSortedError,
    QuantityMismatchError,
    ReturnExceedsSoldError,
    SaleLockedError,
)
from backoffice_modules.stock.config import StockConfig
from backoffice_modules.stock.models import AllocationRequest, PaymentType, SaleLine
from backoffice_modules.stock.orm import SaleDetailModel, SaleModel, SortingModel
from backoffice_modules.stock.service import StockService

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def purchase(stock_service, item_a, vendor_id, test_actor_id):
    """Unsorted lot of 100 units."""
    return stock_service.record_purchase(
        item_a.id, vendor_id, 100, Decimal("5000"), PaymentType.CASH, test_actor_id,
    )


@pytest.fixture
def sorted_stock(stock_service, purchase, item_a, item_b, test_actor_id):
    """Mango 60, Banana 40."""
    stock_service.sort_purchase(
        purchase.id,
        [AllocationRequest(item_a.id, 60), AllocationRequest(item_b.id, 40)],
        test_actor_id,
    )
    return purchase


def _sell(stock_service, customer_id, actor_id, *lines, **kwargs):
    return stock_service.record_sale(
        customer_id,
        [SaleLine(item_id, quantity, Decimal("10")) for item_id, quantity in lines],
        kwargs.pop("payment_type", PaymentType.CASH),
        actor_id,
        **kwargs,
    )


# =============================================================================
# Purchases and sorting
# =============================================================================


class TestSorting:

    def test_exact_allocation_sorts_purchase(
        self, stock_service, purchase, item_a, item_b, test_actor_id,
    ):
        result = stock_service.sort_purchase(
            purchase.id,
            [AllocationRequest(item_a.id, 60), AllocationRequest(item_b.id, 40)],
            test_actor_id,
        )

        assert result.total_quantity == 100
        assert stock_service.get_purchase(purchase.id).is_sorted
        assert stock_service.available_quantity(item_a.id) == 60
        assert stock_service.available_quantity(item_b.id) == 40

    def test_mismatch_leaves_purchase_unsorted(
        self, stock_service, session, purchase, item_a, item_b, test_actor_id,
    ):
        with pytest.raises(QuantityMismatchError):
            stock_service.sort_purchase(
                purchase.id,
                [AllocationRequest(item_a.id, 60), AllocationRequest(item_b.id, 30)],
                test_actor_id,
            )

        assert not stock_service.get_purchase(purchase.id).is_sorted
        assert session.query(SortingModel).count() == 0
        assert stock_service.available_quantity(item_a.id) == 0

    def test_purchase_is_sorted_only_once(
        self, stock_service, sorted_stock, item_a, test_actor_id,
    ):
        with pytest.raises(PurchaseAlreadySortedError):
            stock_service.sort_purchase(
                sorted_stock.id, [AllocationRequest(item_a.id, 100)], test_actor_id,
            )
        assert len(stock_service.get_sorting_lines(sorted_stock.id)) == 2
        assert stock_service.available_quantity(item_a.id) == 60

    def test_unknown_item_persists_nothing(
        self, stock_service, session, purchase, item_a, test_actor_id,
    ):
        with pytest.raises(ItemNotFoundError):
            stock_service.sort_purchase(
                purchase.id,
                [AllocationRequest(item_a.id, 50), AllocationRequest(uuid4(), 50)],
                test_actor_id,
            )
        assert not stock_service.get_purchase(purchase.id).is_sorted
        assert session.query(SortingModel).count() == 0

    def test_missing_item_row(self, stock_service, purchase, test_actor_id):
        with pytest.raises(InvalidAllocationError) as exc_info:
            stock_service.sort_purchase(
                purchase.id, [AllocationRequest(None, 100)], test_actor_id,
            )
        assert exc_info.value.row == 1

    def test_unknown_purchase(self, stock_service, item_a, test_actor_id):
        with pytest.raises(PurchaseNotFoundError):
            stock_service.sort_purchase(uuid4(), [AllocationRequest(item_a.id, 1)], test_actor_id)

    def test_lines_carry_purchase_settlement(
        self, stock_service, item_a, vendor_id, bank_account_id, test_actor_id,
    ):
        purchase = stock_service.record_purchase(
            item_a.id, vendor_id, 10, Decimal("500"), "bank", test_actor_id,
            bank_account_id=bank_account_id,
        )
        stock_service.sort_purchase(purchase.id, [AllocationRequest(item_a.id, 10)], test_actor_id)

        (line,) = stock_service.get_sorting_lines(purchase.id)
        assert line.vendor_id == vendor_id
        assert line.payment_type is PaymentType.BANK
        assert line.bank_account_id == bank_account_id

    def test_bank_purchase_needs_account(self, stock_service, item_a, vendor_id, test_actor_id):
        with pytest.raises(InvalidSaleError):
            stock_service.record_purchase(
                item_a.id, vendor_id, 10, Decimal("500"), PaymentType.BANK, test_actor_id,
            )

    def test_sort_logs_purchase_context(
        self, stock_service, purchase, item_a, test_actor_id, captured_logs,
    ):
        stock_service.sort_purchase(purchase.id, [AllocationRequest(item_a.id, 100)], test_actor_id)
        sorted_logs = [r for r in captured_logs() if r["message"] == "purchase_sorted"]
        assert sorted_logs[0]["purchase_id"] == str(purchase.id)


class TestEditSorting:

    def test_reallocate_unsold_stock(
        self, stock_service, sorted_stock, item_a, item_b, test_actor_id,
    ):
        stock_service.edit_sorting(
            sorted_stock.id,
            [AllocationRequest(item_a.id, 70), AllocationRequest(item_b.id, 30)],
            test_actor_id,
        )
        assert stock_service.available_quantity(item_a.id) == 70
        assert stock_service.available_quantity(item_b.id) == 30
        assert len(stock_service.get_sorting_lines(sorted_stock.id)) == 2

    def test_cannot_take_back_sold_stock(
        self, stock_service, sorted_stock, item_a, item_b, customer_id, test_actor_id,
    ):
        _sell(stock_service, customer_id, test_actor_id, (item_a.id, 50))

        with pytest.raises(InsufficientStockError):
            stock_service.edit_sorting(
                sorted_stock.id,
                [AllocationRequest(item_a.id, 40), AllocationRequest(item_b.id, 60)],
                test_actor_id,
            )
        assert stock_service.available_quantity(item_a.id) == 10

    def test_unsorted_purchase(self, stock_service, purchase, item_a, test_actor_id):
        with pytest.raises(PurchaseNotSortedError):
            stock_service.edit_sorting(purchase.id, [AllocationRequest(item_a.id, 100)], test_actor_id)


# =============================================================================
# Sales
# =============================================================================


class TestSales:

    def test_sale_within_stock(
        self, stock_service, sorted_stock, item_a, item_b, customer_id, test_actor_id,
    ):
        sale = _sell(stock_service, customer_id, test_actor_id, (item_a.id, 15), (item_b.id, 5))

        assert sale.total_quantity == 20
        assert sale.total_amount == Decimal("200")
        assert {d.item_id: d.quantity for d in sale.details} == {item_a.id: 15, item_b.id: 5}
        assert stock_service.available_quantity(item_a.id) == 45

    def test_shortfall_rejects_whole_sale(
        self, stock_service, session, item_a, vendor_id, customer_id, test_actor_id,
    ):
        purchase = stock_service.record_purchase(
            item_a.id, vendor_id, 10, Decimal("500"), PaymentType.CASH, test_actor_id,
        )
        stock_service.sort_purchase(purchase.id, [AllocationRequest(item_a.id, 10)], test_actor_id)

        with pytest.raises(InsufficientStockError) as exc_info:
            _sell(stock_service, customer_id, test_actor_id, (item_a.id, 15))

        assert "Insufficient stock for Mango: available 10, requested 15" in str(exc_info.value)
        assert session.query(SaleModel).count() == 0
        assert session.query(SaleDetailModel).count() == 0
        assert stock_service.available_quantity(item_a.id) == 10

    def test_every_short_item_is_reported(
        self, stock_service, sorted_stock, item_a, item_b, customer_id, test_actor_id,
    ):
        with pytest.raises(InsufficientStockError) as exc_info:
            _sell(stock_service, customer_id, test_actor_id, (item_a.id, 70), (item_b.id, 50))

        shortfalls = {s.item_name: (s.available, s.requested) for s in exc_info.value.shortfalls}
        assert shortfalls == {"Mango": (60, 70), "Banana": (40, 50)}

    def test_lines_of_one_item_are_summed(
        self, stock_service, sorted_stock, item_a, customer_id, test_actor_id,
    ):
        with pytest.raises(InsufficientStockError):
            _sell(stock_service, customer_id, test_actor_id, (item_a.id, 40), (item_a.id, 30))

    def test_sequential_sales_cannot_oversell(
        self, stock_service, sorted_stock, item_a, customer_id, test_actor_id,
    ):
        _sell(stock_service, customer_id, test_actor_id, (item_a.id, 40))
        with pytest.raises(InsufficientStockError):
            _sell(stock_service, customer_id, test_actor_id, (item_a.id, 40))
        assert stock_service.available_quantity(item_a.id) == 20

    def test_validation_messages(self, stock_service, item_a, customer_id, test_actor_id):
        with pytest.raises(InvalidSaleError, match="Please select a customer"):
            _sell(stock_service, None, test_actor_id, (item_a.id, 1))
        with pytest.raises(InvalidSaleError, match="Please add at least one item"):
            stock_service.record_sale(customer_id, [], PaymentType.CASH, test_actor_id)
        with pytest.raises(InvalidSaleError, match="greater than zero"):
            _sell(stock_service, customer_id, test_actor_id, (item_a.id, 0))

    def test_bank_sale_needs_account(
        self, stock_service, sorted_stock, item_a, customer_id, test_actor_id,
    ):
        with pytest.raises(InvalidSaleError, match="bank account"):
            _sell(
                stock_service, customer_id, test_actor_id, (item_a.id, 1),
                payment_type=PaymentType.BANK,
            )

    def test_edit_sale_excludes_its_own_lines(
        self, stock_service, sorted_stock, item_a, customer_id, test_actor_id,
    ):
        sale = _sell(stock_service, customer_id, test_actor_id, (item_a.id, 50))
        edited = stock_service.edit_sale(
            sale.id, [SaleLine(item_a.id, 60, Decimal("10"))], test_actor_id,
        )
        assert edited.total_quantity == 60
        assert stock_service.available_quantity(item_a.id) == 0

        with pytest.raises(InsufficientStockError):
            stock_service.edit_sale(sale.id, [SaleLine(item_a.id, 61, Decimal("10"))], test_actor_id)
        assert stock_service.available_quantity(item_a.id) == 0


# =============================================================================
# Wastage, returns, adjustments
# =============================================================================


class TestStockMovements:

    def test_wastage_reduces_stock(self, stock_service, sorted_stock, item_a, test_actor_id):
        wastage = stock_service.record_wastage(item_a.id, 5, test_actor_id)
        assert wastage.net_price == Decimal("600")
        assert stock_service.available_quantity(item_a.id) == 55

    def test_wastage_beyond_stock_is_rejected(
        self, stock_service, sorted_stock, item_a, test_actor_id,
    ):
        with pytest.raises(InsufficientStockError):
            stock_service.record_wastage(item_a.id, 61, test_actor_id)
        assert stock_service.available_quantity(item_a.id) == 60

    def test_wastage_check_can_be_disabled(
        self, session, deterministic_clock, sorted_stock, item_a, test_actor_id,
    ):
        service = StockService(
            session, clock=deterministic_clock, config=StockConfig(check_wastage_stock=False),
        )
        service.record_wastage(item_a.id, 61, test_actor_id)
        assert service.available_quantity(item_a.id) == -1

    def test_return_restores_stock(
        self, stock_service, sorted_stock, item_a, customer_id, test_actor_id,
    ):
        sale = _sell(stock_service, customer_id, test_actor_id, (item_a.id, 10))
        (detail,) = sale.details

        stock_service.record_sales_return(detail.id, 4, test_actor_id)
        assert stock_service.available_quantity(item_a.id) == 54

        with pytest.raises(ReturnExceedsSoldError) as exc_info:
            stock_service.record_sales_return(detail.id, 7, test_actor_id)
        assert exc_info.value.returnable == 6

    def test_sale_with_returns_is_locked(
        self, stock_service, sorted_stock, item_a, customer_id, test_actor_id,
    ):
        sale = _sell(stock_service, customer_id, test_actor_id, (item_a.id, 10))
        stock_service.record_sales_return(sale.details[0].id, 1, test_actor_id)

        with pytest.raises(SaleLockedError):
            stock_service.edit_sale(sale.id, [SaleLine(item_a.id, 5, Decimal("10"))], test_actor_id)

    def test_adjustment_moves_quantity(
        self, stock_service, sorted_stock, item_a, item_b, test_actor_id,
    ):
        stock_service.record_stock_adjustment(item_a.id, item_b.id, 10, test_actor_id)
        assert stock_service.available_quantity(item_a.id) == 50
        assert stock_service.available_quantity(item_b.id) == 50

    def test_adjustment_needs_source_stock(
        self, stock_service, sorted_stock, item_a, item_b, test_actor_id,
    ):
        with pytest.raises(InsufficientStockError):
            stock_service.record_stock_adjustment(item_b.id, item_a.id, 41, test_actor_id)

    def test_adjustment_to_same_item(self, stock_service, item_a, test_actor_id):
        with pytest.raises(ValueError):
            stock_service.record_stock_adjustment(item_a.id, item_a.id, 1, test_actor_id)

    def test_unknown_item_availability(self, stock_service, engine):
        with pytest.raises(ItemNotFoundError):
            stock_service.available_quantity(uuid4())
