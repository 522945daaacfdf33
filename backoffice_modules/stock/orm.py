"""
SQLAlchemy ORM persistence models for the Stock module.

Responsibility
--------------
Persist the purchase -> sorting -> sale chain: catalog items, purchases,
sorting allocation rows, sales with their lines, wastage, sales returns
and item-to-item stock adjustments.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Quantities are whole units (BigInteger).
* ``PurchaseModel.is_sorted`` only moves from False to True, through a
  conditional UPDATE issued by ``StockService.sort_purchase``.
* ``ItemModel`` rows are the lock targets for availability checks.
* No available-quantity column exists anywhere: availability is always
  recomputed from the movement tables.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase


class ItemModel(TrackedBase):
    """
    A sellable catalog item.

    Maps to the ``Item`` DTO in ``backoffice_modules.stock.models``.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("item_name", name="uq_item_name"),
    )

    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sell_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    def to_dto(self):
        from backoffice_modules.stock.models import Item

        return Item(id=self.id, item_name=self.item_name, sell_price=self.sell_price)

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ItemModel":
        return cls(
            id=dto.id,
            item_name=dto.item_name,
            sell_price=dto.sell_price,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<ItemModel {self.item_name}>"


class PurchaseModel(TrackedBase):
    """
    A purchased lot awaiting (or past) sorting.

    Maps to the ``Purchase`` DTO.
    """

    __tablename__ = "purchases"

    __table_args__ = (
        Index("idx_purchase_vendor", "vendor_id"),
        Index("idx_purchase_sorted", "is_sorted"),
    )

    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    vendor_id: Mapped[UUID]
    total_quantity: Mapped[int] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    payment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    bank_account_id: Mapped[UUID | None]
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_sorted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sortings: Mapped[list["SortingModel"]] = relationship(
        "SortingModel",
        back_populates="purchase",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        from backoffice_modules.stock.models import PaymentType, Purchase

        return Purchase(
            id=self.id,
            item_id=self.item_id,
            vendor_id=self.vendor_id,
            total_quantity=self.total_quantity,
            total_amount=self.total_amount,
            payment_type=PaymentType(self.payment_type),
            purchase_date=self.purchase_date,
            bank_account_id=self.bank_account_id,
            notes=self.notes,
            is_sorted=self.is_sorted,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "PurchaseModel":
        return cls(
            id=dto.id,
            item_id=dto.item_id,
            vendor_id=dto.vendor_id,
            total_quantity=dto.total_quantity,
            total_amount=dto.total_amount,
            payment_type=dto.payment_type.value,
            bank_account_id=dto.bank_account_id,
            purchase_date=dto.purchase_date,
            notes=dto.notes,
            is_sorted=dto.is_sorted,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PurchaseModel {self.total_quantity} sorted={self.is_sorted}>"


class SortingModel(TrackedBase):
    """
    One allocation row of a sorted purchase.

    Maps to the ``SortingLine`` DTO.
    """

    __tablename__ = "sortings"

    __table_args__ = (
        Index("idx_sorting_purchase", "purchase_id"),
        Index("idx_sorting_item", "item_id"),
    )

    purchase_id: Mapped[UUID] = mapped_column(ForeignKey("purchases.id"), nullable=False)
    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    vendor_id: Mapped[UUID]
    payment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    bank_account_id: Mapped[UUID | None]
    sorting_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    purchase: Mapped["PurchaseModel"] = relationship(
        "PurchaseModel",
        back_populates="sortings",
    )

    def to_dto(self):
        from backoffice_modules.stock.models import PaymentType, SortingLine

        return SortingLine(
            id=self.id,
            purchase_id=self.purchase_id,
            item_id=self.item_id,
            quantity=self.quantity,
            vendor_id=self.vendor_id,
            payment_type=PaymentType(self.payment_type),
            sorting_date=self.sorting_date,
            amount=self.amount,
            bank_account_id=self.bank_account_id,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "SortingModel":
        return cls(
            id=dto.id,
            purchase_id=dto.purchase_id,
            item_id=dto.item_id,
            quantity=dto.quantity,
            amount=dto.amount,
            vendor_id=dto.vendor_id,
            payment_type=dto.payment_type.value,
            bank_account_id=dto.bank_account_id,
            sorting_date=dto.sorting_date,
            notes=dto.notes,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<SortingModel purchase={self.purchase_id} item={self.item_id} x{self.quantity}>"


class SaleModel(TrackedBase):
    """
    A sale header.

    Maps to the ``Sale`` DTO (together with its lines).
    """

    __tablename__ = "sales"

    __table_args__ = (
        Index("idx_sale_customer", "customer_id"),
        Index("idx_sale_date", "sale_date"),
    )

    customer_id: Mapped[UUID]
    payment_type: Mapped[str] = mapped_column(String(50), nullable=False)
    bank_account_id: Mapped[UUID | None]
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    details: Mapped[list["SaleDetailModel"]] = relationship(
        "SaleDetailModel",
        back_populates="sale",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        from backoffice_modules.stock.models import PaymentType, Sale

        return Sale(
            id=self.id,
            customer_id=self.customer_id,
            payment_type=PaymentType(self.payment_type),
            sale_date=self.sale_date,
            total_quantity=self.total_quantity,
            total_amount=self.total_amount,
            details=tuple(detail.to_dto() for detail in self.details),
            discount_amount=self.discount_amount,
            bank_account_id=self.bank_account_id,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<SaleModel {self.sale_date} {self.total_amount}>"


class SaleDetailModel(TrackedBase):
    """
    One line of a sale.

    Maps to the ``SaleDetail`` DTO.
    """

    __tablename__ = "sale_details"

    __table_args__ = (
        Index("idx_sale_detail_sale", "sale_id"),
        Index("idx_sale_detail_item", "item_id"),
    )

    sale_id: Mapped[UUID] = mapped_column(ForeignKey("sales.id"), nullable=False)
    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    sale: Mapped["SaleModel"] = relationship("SaleModel", back_populates="details")

    def to_dto(self):
        from backoffice_modules.stock.models import SaleDetail

        return SaleDetail(
            id=self.id,
            sale_id=self.sale_id,
            item_id=self.item_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            amount=self.amount,
        )

    def __repr__(self) -> str:
        return f"<SaleDetailModel item={self.item_id} x{self.quantity} @ {self.unit_price}>"


class WastageModel(TrackedBase):
    """
    Written-off stock.

    Maps to the ``Wastage`` DTO.
    """

    __tablename__ = "wastages"

    __table_args__ = (
        Index("idx_wastage_item", "item_id"),
    )

    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    sell_price: Mapped[Decimal] = mapped_column(nullable=False)
    net_price: Mapped[Decimal] = mapped_column(nullable=False)
    wastage_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from backoffice_modules.stock.models import Wastage

        return Wastage(
            id=self.id,
            item_id=self.item_id,
            quantity=self.quantity,
            sell_price=self.sell_price,
            net_price=self.net_price,
            wastage_date=self.wastage_date,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "WastageModel":
        return cls(
            id=dto.id,
            item_id=dto.item_id,
            quantity=dto.quantity,
            sell_price=dto.sell_price,
            net_price=dto.net_price,
            wastage_date=dto.wastage_date,
            notes=dto.notes,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<WastageModel item={self.item_id} x{self.quantity}>"


class SalesReturnModel(TrackedBase):
    """
    Units of a sale line returned to stock.

    Maps to the ``SalesReturn`` DTO.
    """

    __tablename__ = "sales_returns"

    __table_args__ = (
        Index("idx_sales_return_detail", "sale_detail_id"),
        Index("idx_sales_return_item", "item_id"),
    )

    sale_detail_id: Mapped[UUID] = mapped_column(ForeignKey("sale_details.id"), nullable=False)
    item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    return_quantity: Mapped[int] = mapped_column(nullable=False)
    return_date: Mapped[date] = mapped_column(Date, nullable=False)

    def to_dto(self):
        from backoffice_modules.stock.models import SalesReturn

        return SalesReturn(
            id=self.id,
            sale_detail_id=self.sale_detail_id,
            item_id=self.item_id,
            return_quantity=self.return_quantity,
            return_date=self.return_date,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "SalesReturnModel":
        return cls(
            id=dto.id,
            sale_detail_id=dto.sale_detail_id,
            item_id=dto.item_id,
            return_quantity=dto.return_quantity,
            return_date=dto.return_date,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<SalesReturnModel detail={self.sale_detail_id} x{self.return_quantity}>"


class StockAdjustmentModel(TrackedBase):
    """
    Quantity moved from one item to another.

    Maps to the ``StockAdjustment`` DTO.
    """

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        Index("idx_stock_adjustment_prev_item", "prev_item_id"),
        Index("idx_stock_adjustment_new_item", "new_item_id"),
    )

    prev_item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    new_item_id: Mapped[UUID] = mapped_column(ForeignKey("items.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    adjustment_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from backoffice_modules.stock.models import StockAdjustment

        return StockAdjustment(
            id=self.id,
            prev_item_id=self.prev_item_id,
            new_item_id=self.new_item_id,
            quantity=self.quantity,
            adjustment_date=self.adjustment_date,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "StockAdjustmentModel":
        return cls(
            id=dto.id,
            prev_item_id=dto.prev_item_id,
            new_item_id=dto.new_item_id,
            quantity=dto.quantity,
            adjustment_date=dto.adjustment_date,
            notes=dto.notes,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<StockAdjustmentModel {self.prev_item_id} -> {self.new_item_id} x{self.quantity}>"
