"""
Stock Service (``backoffice_modules.stock.service``).

Responsibility
--------------
Orchestrates the purchase -> sorting -> sale chain: recording purchases,
sorting them into catalog items, selling, writing off wastage, accepting
returns and moving quantity between items.  Every write that consumes
stock is gated on the item's freshly recomputed available quantity.

Architecture position
---------------------
**Modules layer** -- thin ERP glue over ``backoffice_engines.sorting`` and
``backoffice_engines.stock``.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` on failure or exception).
* Sorting is a one-way ``is_sorted`` flip done with a conditional
  ``UPDATE ... WHERE is_sorted = false``; zero rows updated means another
  caller got there first.
* Item rows are locked (``SELECT ... FOR UPDATE``, ordered by id) before
  availability is recomputed for a sale, wastage, adjustment or sorting
  edit, so concurrent sales of one item serialize.
* Available quantity is never stored; it is a fold over the movement
  tables and can never be driven below zero by this service.

Failure modes
-------------
* ``PurchaseNotFoundError``, ``PurchaseAlreadySortedError``,
  ``PurchaseNotSortedError``, ``QuantityMismatchError``,
  ``InvalidAllocationError``, ``ItemNotFoundError``,
  ``InsufficientStockError`` (lists every short item), ``InvalidSaleError``,
  ``SaleNotFoundError``, ``SaleLockedError``, ``ReturnExceedsSoldError``.
* ``ValueError`` for malformed quantities outside sales and sorting.

Usage::

    service = StockService(session, clock=clock)
    result = service.sort_purchase(
        purchase_id,
        [AllocationRequest(item_a, 60), AllocationRequest(item_b, 40)],
        actor_id=actor_id,
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backoffice_engines.sorting import allocation_deltas, plan_sorting
from backoffice_engines.stock import (
    aggregate_requests,
    available_by_item,
    compute_available_quantity,
    find_shortfalls,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.exceptions import (
    InsufficientStockError,
    InvalidSaleError,
    ItemNotFoundError,
    PurchaseAlreadySortedError,
    PurchaseNotFoundError,
    PurchaseNotSortedError,
    ReturnExceedsSoldError,
    SaleLockedError,
    SaleNotFoundError,
    StockError,
)
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.stock.config import StockConfig
from backoffice_modules.stock.models import (
    AllocationRequest,
    Item,
    MovementKind,
    PaymentType,
    Purchase,
    Sale,
    SaleLine,
    SalesReturn,
    SortingLine,
    SortingResult,
    StockAdjustment,
    StockMovement,
    Wastage,
)
from backoffice_modules.stock.orm import (
    ItemModel,
    PurchaseModel,
    SaleDetailModel,
    SaleModel,
    SalesReturnModel,
    SortingModel,
    StockAdjustmentModel,
    WastageModel,
)

logger = get_logger("modules.stock.service")


class StockService:
    """
    Orchestrates purchases, sorting and sales through the stock engines.

    Contract
    --------
    * A rejected operation persists nothing: validation happens before the
      first write, and any exception rolls the session back.
    * ``available_quantity`` is a pure read.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: StockConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or StockConfig.with_defaults()

    # =========================================================================
    # Internal reads
    # =========================================================================

    def _lock_items(self, item_ids: Iterable[UUID]) -> dict[UUID, ItemModel]:
        """Lock item rows in id order; every id must exist."""
        wanted = sorted(set(item_ids), key=str)
        if not wanted:
            return {}
        rows = self._session.execute(
            select(ItemModel)
            .where(ItemModel.id.in_(wanted))
            .order_by(ItemModel.id)
            .with_for_update()
        ).scalars().all()
        found = {row.id: row for row in rows}
        for item_id in wanted:
            if item_id not in found:
                raise ItemNotFoundError(item_id)
        return found

    def _require_items(self, item_ids: Iterable[UUID]) -> dict[UUID, ItemModel]:
        found = {}
        for item_id in set(item_ids):
            row = self._session.get(ItemModel, item_id)
            if row is None:
                raise ItemNotFoundError(item_id)
            found[item_id] = row
        return found

    def _movements(
        self,
        item_ids: Iterable[UUID],
        *,
        exclude_sale_id: UUID | None = None,
    ) -> list[StockMovement]:
        ids = list(set(item_ids))
        movements: list[StockMovement] = []
        if not ids:
            return movements

        def collect(kind: MovementKind, item_col, quantity_col, *criteria) -> None:
            rows = self._session.execute(
                select(item_col, func.coalesce(func.sum(quantity_col), 0))
                .where(item_col.in_(ids), *criteria)
                .group_by(item_col)
            ).all()
            movements.extend(
                StockMovement(item_id=item_id, kind=kind, quantity=int(total))
                for item_id, total in rows
            )

        collect(MovementKind.SORTED_IN, SortingModel.item_id, SortingModel.quantity)
        sale_criteria = []
        if exclude_sale_id is not None:
            sale_criteria.append(SaleDetailModel.sale_id != exclude_sale_id)
        collect(MovementKind.SALE, SaleDetailModel.item_id, SaleDetailModel.quantity, *sale_criteria)
        collect(MovementKind.WASTAGE, WastageModel.item_id, WastageModel.quantity)
        collect(MovementKind.SALES_RETURN, SalesReturnModel.item_id, SalesReturnModel.return_quantity)
        collect(MovementKind.ADJUSTMENT_IN, StockAdjustmentModel.new_item_id, StockAdjustmentModel.quantity)
        collect(MovementKind.ADJUSTMENT_OUT, StockAdjustmentModel.prev_item_id, StockAdjustmentModel.quantity)
        return movements

    def _check_stock(
        self,
        requested: dict[UUID, int],
        items: dict[UUID, ItemModel],
        *,
        exclude_sale_id: UUID | None = None,
        event: str,
    ) -> None:
        """Raise ``InsufficientStockError`` if any requested total is short."""
        available = available_by_item(
            self._movements(requested.keys(), exclude_sale_id=exclude_sale_id)
        )
        shortfalls = find_shortfalls(
            requested,
            available,
            {item_id: row.item_name for item_id, row in items.items()},
        )
        if shortfalls:
            logger.warning(event, extra={
                "shortfalls": [
                    {
                        "item_id": str(s.item_id),
                        "available": s.available,
                        "requested": s.requested,
                    }
                    for s in shortfalls
                ],
            })
            raise InsufficientStockError(shortfalls)

    def _validate_settlement(self, payment_type: PaymentType, bank_account_id: UUID | None) -> None:
        if (
            payment_type is PaymentType.BANK
            and bank_account_id is None
            and self._config.require_bank_account_for_bank_payments
        ):
            raise InvalidSaleError("Please select a bank account for bank payments")

    # =========================================================================
    # Catalog and queries
    # =========================================================================

    def add_item(self, item_name: str, sell_price: Decimal, actor_id: UUID) -> Item:
        """Add a catalog item."""
        try:
            if not item_name or not item_name.strip():
                raise ValueError("item name cannot be empty")
            if sell_price < 0:
                raise ValueError("sell price cannot be negative")
            item = Item(id=uuid4(), item_name=item_name.strip(), sell_price=sell_price)
            self._session.add(ItemModel.from_dto(item, created_by_id=actor_id))
            self._session.commit()
            logger.info("item_added", extra={
                "item_id": str(item.id),
                "item_name": item.item_name,
            })
            return item
        except Exception:
            self._session.rollback()
            raise

    def get_purchase(self, purchase_id: UUID) -> Purchase:
        orm = self._session.get(PurchaseModel, purchase_id)
        if orm is None:
            raise PurchaseNotFoundError(purchase_id)
        return orm.to_dto()

    def get_sorting_lines(self, purchase_id: UUID) -> tuple[SortingLine, ...]:
        rows = (
            self._session.query(SortingModel)
            .filter(SortingModel.purchase_id == purchase_id)
            .all()
        )
        return tuple(row.to_dto() for row in rows)

    def get_sale(self, sale_id: UUID) -> Sale:
        orm = self._session.get(SaleModel, sale_id)
        if orm is None:
            raise SaleNotFoundError(sale_id)
        return orm.to_dto()

    def available_quantity(self, item_id: UUID) -> int:
        """
        Units of ``item_id`` currently available for sale.

        Recomputed from the movement tables on every call.

        Raises:
            ItemNotFoundError: unknown item.
        """
        self._require_items([item_id])
        return compute_available_quantity(self._movements([item_id]), item_id)

    # =========================================================================
    # Purchases and sorting
    # =========================================================================

    def record_purchase(
        self,
        item_id: UUID,
        vendor_id: UUID,
        total_quantity: int,
        total_amount: Decimal,
        payment_type: PaymentType | str,
        actor_id: UUID,
        *,
        purchase_date: date | None = None,
        bank_account_id: UUID | None = None,
        notes: str | None = None,
    ) -> Purchase:
        """
        Record an unsorted purchased lot.

        Raises:
            ItemNotFoundError, InvalidSaleError (bank account), ValueError.
        """
        try:
            payment = PaymentType(payment_type)
            if total_quantity <= 0:
                raise ValueError("purchase quantity must be greater than zero")
            if total_amount < 0:
                raise ValueError("purchase amount cannot be negative")
            self._validate_settlement(payment, bank_account_id)
            self._require_items([item_id])

            purchase = Purchase(
                id=uuid4(),
                item_id=item_id,
                vendor_id=vendor_id,
                total_quantity=total_quantity,
                total_amount=total_amount,
                payment_type=payment,
                purchase_date=purchase_date or self._clock.today(),
                bank_account_id=bank_account_id,
                notes=notes,
            )
            self._session.add(PurchaseModel.from_dto(purchase, created_by_id=actor_id))
            self._session.commit()

            logger.info("purchase_recorded", extra={
                "purchase_id": str(purchase.id),
                "total_quantity": total_quantity,
                "total_amount": str(total_amount),
                "payment_type": payment.value,
            })
            return purchase

        except Exception:
            self._session.rollback()
            raise

    def sort_purchase(
        self,
        purchase_id: UUID,
        allocations: Sequence[AllocationRequest],
        actor_id: UUID,
        *,
        sorting_date: date | None = None,
    ) -> SortingResult:
        """
        Split an unsorted purchase into catalog items.

        Preconditions:
            The purchase exists and ``is_sorted`` is False.

        Postconditions:
            On success the purchase is sorted and one sorting row exists per
            allocation, their quantities summing to the purchased quantity.
            On any failure nothing is persisted.

        Raises:
            PurchaseNotFoundError, PurchaseAlreadySortedError,
            InvalidAllocationError, QuantityMismatchError, ItemNotFoundError.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            purchase_id=str(purchase_id),
        ):
            try:
                orm = self._session.get(PurchaseModel, purchase_id)
                if orm is None:
                    raise PurchaseNotFoundError(purchase_id)
                purchase = orm.to_dto()

                logger.info("purchase_sort_started", extra={
                    "allocation_count": len(allocations),
                    "total_quantity": purchase.total_quantity,
                })

                lines = plan_sorting(
                    purchase, allocations, sorting_date or self._clock.today(),
                )
                self._require_items(line.item_id for line in lines)

                flipped = self._session.execute(
                    update(PurchaseModel)
                    .where(PurchaseModel.id == purchase_id, PurchaseModel.is_sorted.is_(False))
                    .values(is_sorted=True, updated_by_id=actor_id)
                    .execution_options(synchronize_session=False)
                )
                if flipped.rowcount != 1:
                    raise PurchaseAlreadySortedError(purchase_id)
                orm.is_sorted = True
                orm.updated_by_id = actor_id

                orm.sortings.extend(
                    SortingModel.from_dto(line, created_by_id=actor_id) for line in lines
                )
                self._session.commit()

                logger.info("purchase_sorted", extra={
                    "line_count": len(lines),
                    "total_quantity": purchase.total_quantity,
                })
                return SortingResult(purchase_id=purchase_id, lines=lines)

            except StockError as exc:
                self._session.rollback()
                logger.info("purchase_sort_rejected", extra={"error_code": exc.code})
                raise
            except Exception:
                self._session.rollback()
                raise

    def edit_sorting(
        self,
        purchase_id: UUID,
        allocations: Sequence[AllocationRequest],
        actor_id: UUID,
        *,
        sorting_date: date | None = None,
    ) -> SortingResult:
        """
        Replace the allocation rows of an already-sorted purchase.

        The replacement must still sum to the purchased quantity, and no
        item may lose more sorted-in quantity than it has available.

        Raises:
            PurchaseNotFoundError, PurchaseNotSortedError,
            InvalidAllocationError, QuantityMismatchError,
            ItemNotFoundError, InsufficientStockError.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            purchase_id=str(purchase_id),
        ):
            try:
                orm = self._session.execute(
                    select(PurchaseModel)
                    .where(PurchaseModel.id == purchase_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()
                if orm is None:
                    raise PurchaseNotFoundError(purchase_id)
                if not orm.is_sorted:
                    raise PurchaseNotSortedError(purchase_id)
                purchase = orm.to_dto()
                current = tuple(line.to_dto() for line in orm.sortings)

                lines = plan_sorting(
                    purchase, allocations, sorting_date or self._clock.today(),
                    replacing=True,
                )
                deltas = allocation_deltas(current, allocations)
                items = self._lock_items(
                    {line.item_id for line in current} | {line.item_id for line in lines}
                )
                reductions = {item_id: -delta for item_id, delta in deltas.items() if delta < 0}
                if reductions:
                    self._check_stock(reductions, items, event="sorting_edit_rejected_insufficient_stock")

                orm.sortings = [
                    SortingModel.from_dto(line, created_by_id=actor_id) for line in lines
                ]
                orm.updated_by_id = actor_id
                self._session.commit()

                logger.info("purchase_sorting_edited", extra={
                    "line_count": len(lines),
                    "changed_items": len(deltas),
                })
                return SortingResult(purchase_id=purchase_id, lines=lines)

            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Sales
    # =========================================================================

    def _validate_sale(
        self,
        customer_id: UUID | None,
        lines: Sequence[SaleLine],
        payment_type: PaymentType,
        bank_account_id: UUID | None,
        discount_amount: Decimal,
    ) -> None:
        if customer_id is None:
            raise InvalidSaleError("Please select a customer")
        if not lines:
            raise InvalidSaleError("Please add at least one item")
        for line in lines:
            if line.item_id is None:
                raise InvalidSaleError("Please select an item for every line")
            if line.quantity <= 0 or line.unit_price <= 0:
                raise InvalidSaleError(
                    "Quantity, unit price and amount must be greater than zero for every line"
                )
        if discount_amount < 0:
            raise InvalidSaleError("Discount cannot be negative")
        if discount_amount > sum((line.amount for line in lines), Decimal("0")):
            raise InvalidSaleError("Discount cannot exceed the sale total")
        self._validate_settlement(payment_type, bank_account_id)

    def _detail_models(
        self,
        sale_id: UUID,
        lines: Sequence[SaleLine],
        actor_id: UUID,
    ) -> list[SaleDetailModel]:
        return [
            SaleDetailModel(
                id=uuid4(),
                sale_id=sale_id,
                item_id=line.item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                amount=line.amount,
                created_by_id=actor_id,
            )
            for line in lines
        ]

    def record_sale(
        self,
        customer_id: UUID,
        lines: Sequence[SaleLine],
        payment_type: PaymentType | str,
        actor_id: UUID,
        *,
        sale_date: date | None = None,
        bank_account_id: UUID | None = None,
        discount_amount: Decimal = Decimal("0"),
        notes: str | None = None,
    ) -> Sale:
        """
        Record a sale if every item has enough stock.

        Requested quantities are summed per item (two lines of one item count
        together) and compared with availability recomputed under item row
        locks.  One shortfall rejects the whole sale.

        Raises:
            InvalidSaleError, ItemNotFoundError, InsufficientStockError.
        """
        sale_id = uuid4()
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            sale_id=str(sale_id),
        ):
            try:
                payment = PaymentType(payment_type)
                self._validate_sale(customer_id, lines, payment, bank_account_id, discount_amount)

                requested = aggregate_requests(lines)
                items = self._lock_items(requested.keys())
                self._check_stock(requested, items, event="sale_rejected_insufficient_stock")

                sale_orm = SaleModel(
                    id=sale_id,
                    customer_id=customer_id,
                    payment_type=payment.value,
                    bank_account_id=bank_account_id,
                    sale_date=sale_date or self._clock.today(),
                    total_quantity=sum(line.quantity for line in lines),
                    total_amount=sum((line.amount for line in lines), Decimal("0")),
                    discount_amount=discount_amount,
                    notes=notes,
                    created_by_id=actor_id,
                )
                sale_orm.details = self._detail_models(sale_id, lines, actor_id)
                self._session.add(sale_orm)
                self._session.commit()

                logger.info("sale_recorded", extra={
                    "line_count": len(lines),
                    "total_quantity": sale_orm.total_quantity,
                    "total_amount": str(sale_orm.total_amount),
                })
                return sale_orm.to_dto()

            except Exception:
                self._session.rollback()
                raise

    def edit_sale(
        self,
        sale_id: UUID,
        lines: Sequence[SaleLine],
        actor_id: UUID,
        *,
        customer_id: UUID | None = None,
        payment_type: PaymentType | str | None = None,
        bank_account_id: UUID | None = None,
        discount_amount: Decimal | None = None,
        notes: str | None = None,
    ) -> Sale:
        """
        Replace the lines of a sale.

        Availability is recomputed excluding the sale's own current lines.
        Sales with recorded returns are locked.

        Raises:
            SaleNotFoundError, SaleLockedError, InvalidSaleError,
            ItemNotFoundError, InsufficientStockError.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            sale_id=str(sale_id),
        ):
            try:
                sale_orm = self._session.get(SaleModel, sale_id)
                if sale_orm is None:
                    raise SaleNotFoundError(sale_id)

                if self._config.lock_sales_with_returns:
                    returned = self._session.execute(
                        select(func.count(SalesReturnModel.id))
                        .join(SaleDetailModel, SaleDetailModel.id == SalesReturnModel.sale_detail_id)
                        .where(SaleDetailModel.sale_id == sale_id)
                    ).scalar_one()
                    if returned:
                        raise SaleLockedError(sale_id)

                customer = customer_id or sale_orm.customer_id
                payment = PaymentType(payment_type or sale_orm.payment_type)
                bank_account = bank_account_id or sale_orm.bank_account_id
                discount = discount_amount if discount_amount is not None else sale_orm.discount_amount
                self._validate_sale(customer, lines, payment, bank_account, discount)

                requested = aggregate_requests(lines)
                previous_items = {detail.item_id for detail in sale_orm.details}
                items = self._lock_items(set(requested) | previous_items)
                self._check_stock(
                    requested, items,
                    exclude_sale_id=sale_id,
                    event="sale_edit_rejected_insufficient_stock",
                )

                sale_orm.customer_id = customer
                sale_orm.payment_type = payment.value
                sale_orm.bank_account_id = bank_account
                sale_orm.discount_amount = discount
                if notes is not None:
                    sale_orm.notes = notes
                sale_orm.total_quantity = sum(line.quantity for line in lines)
                sale_orm.total_amount = sum((line.amount for line in lines), Decimal("0"))
                sale_orm.details = self._detail_models(sale_id, lines, actor_id)
                sale_orm.updated_by_id = actor_id
                self._session.commit()

                logger.info("sale_edited", extra={
                    "line_count": len(lines),
                    "total_amount": str(sale_orm.total_amount),
                })
                return sale_orm.to_dto()

            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Wastage, returns, adjustments
    # =========================================================================

    def record_wastage(
        self,
        item_id: UUID,
        quantity: int,
        actor_id: UUID,
        *,
        wastage_date: date | None = None,
        sell_price: Decimal | None = None,
        notes: str | None = None,
    ) -> Wastage:
        """
        Write off spoiled stock; ``net_price = sell_price * quantity``.

        ``sell_price`` defaults to the item's catalog price.

        Raises:
            ItemNotFoundError, InsufficientStockError (when wastage checks
            are enabled), ValueError.
        """
        try:
            if quantity <= 0:
                raise ValueError("wastage quantity must be greater than zero")
            if sell_price is not None and sell_price < 0:
                raise ValueError("sell price cannot be negative")

            items = self._lock_items([item_id])
            if self._config.check_wastage_stock:
                self._check_stock({item_id: quantity}, items, event="wastage_rejected_insufficient_stock")

            price = sell_price if sell_price is not None else items[item_id].sell_price
            wastage = Wastage(
                id=uuid4(),
                item_id=item_id,
                quantity=quantity,
                sell_price=price,
                net_price=price * quantity,
                wastage_date=wastage_date or self._clock.today(),
                notes=notes,
            )
            self._session.add(WastageModel.from_dto(wastage, created_by_id=actor_id))
            self._session.commit()

            logger.info("wastage_recorded", extra={
                "wastage_id": str(wastage.id),
                "item_id": str(item_id),
                "quantity": quantity,
                "net_price": str(wastage.net_price),
            })
            return wastage

        except Exception:
            self._session.rollback()
            raise

    def record_sales_return(
        self,
        sale_detail_id: UUID,
        return_quantity: int,
        actor_id: UUID,
        *,
        return_date: date | None = None,
    ) -> SalesReturn:
        """
        Return units of a sale line to stock.

        Raises:
            SaleNotFoundError: unknown sale line.
            ReturnExceedsSoldError: more than sold minus prior returns.
            ValueError: non-positive quantity.
        """
        try:
            if return_quantity <= 0:
                raise ValueError("return quantity must be greater than zero")

            detail = self._session.execute(
                select(SaleDetailModel)
                .where(SaleDetailModel.id == sale_detail_id)
                .with_for_update()
            ).scalar_one_or_none()
            if detail is None:
                raise SaleNotFoundError(sale_detail_id)

            with LogContext.bind(sale_id=str(detail.sale_id)):
                already_returned = self._session.execute(
                    select(func.coalesce(func.sum(SalesReturnModel.return_quantity), 0))
                    .where(SalesReturnModel.sale_detail_id == sale_detail_id)
                ).scalar_one()
                returnable = detail.quantity - int(already_returned)
                if return_quantity > returnable:
                    raise ReturnExceedsSoldError(sale_detail_id, returnable, return_quantity)

                sales_return = SalesReturn(
                    id=uuid4(),
                    sale_detail_id=sale_detail_id,
                    item_id=detail.item_id,
                    return_quantity=return_quantity,
                    return_date=return_date or self._clock.today(),
                )
                self._session.add(SalesReturnModel.from_dto(sales_return, created_by_id=actor_id))
                self._session.commit()

                logger.info("sales_return_recorded", extra={
                    "sales_return_id": str(sales_return.id),
                    "sale_detail_id": str(sale_detail_id),
                    "return_quantity": return_quantity,
                })
                return sales_return

        except Exception:
            self._session.rollback()
            raise

    def record_stock_adjustment(
        self,
        prev_item_id: UUID,
        new_item_id: UUID,
        quantity: int,
        actor_id: UUID,
        *,
        adjustment_date: date | None = None,
        notes: str | None = None,
    ) -> StockAdjustment:
        """
        Reclassify ``quantity`` units from one item to another.

        Raises:
            ItemNotFoundError, InsufficientStockError (source item),
            ValueError (same item, non-positive quantity).
        """
        try:
            if prev_item_id == new_item_id:
                raise ValueError("source and target items must differ")
            if quantity <= 0:
                raise ValueError("adjustment quantity must be greater than zero")

            items = self._lock_items([prev_item_id, new_item_id])
            self._check_stock(
                {prev_item_id: quantity}, items,
                event="stock_adjustment_rejected_insufficient_stock",
            )

            adjustment = StockAdjustment(
                id=uuid4(),
                prev_item_id=prev_item_id,
                new_item_id=new_item_id,
                quantity=quantity,
                adjustment_date=adjustment_date or self._clock.today(),
                notes=notes,
            )
            self._session.add(StockAdjustmentModel.from_dto(adjustment, created_by_id=actor_id))
            self._session.commit()

            logger.info("stock_adjusted", extra={
                "adjustment_id": str(adjustment.id),
                "prev_item_id": str(prev_item_id),
                "new_item_id": str(new_item_id),
                "quantity": quantity,
            })
            return adjustment

        except Exception:
            self._session.rollback()
            raise
