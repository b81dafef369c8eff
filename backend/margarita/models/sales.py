from __future__ import annotations

from ..extensions import db
from margarita.money import money, money_str
from margarita.time_utils import to_utc_z, to_iso_date

PAYMENT_METHODS = ("CASH", "CARD", "BANK_TRANSFER", "OTHER")


class Sale(db.Model):
    """
    Recorded sale.

    Totals and discount_percentage are computed by the pricing engine when the
    sale is recorded or repriced and stored as-is. Line prices are snapshots
    and are never refreshed from the catalog.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
        db.Index("ix_sales_location_date", "location_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Walk-in sales have no customer
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    sale_date = db.Column(db.Date, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    is_wholesale = db.Column(db.Boolean, nullable=False, default=False)

    packaging_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    suggested_total_price = db.Column(db.Numeric(10, 2), nullable=False)
    final_total_price = db.Column(db.Numeric(10, 2), nullable=False)
    discount_percentage = db.Column(db.Numeric(7, 2), nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer")
    location = db.relationship("Location")
    lines = db.relationship(
        "SaleProduct",
        cascade="all, delete-orphan",
        order_by="SaleProduct.id",
    )

    @property
    def discount_amount(self):
        return money(self.suggested_total_price - self.final_total_price)

    @property
    def product_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "sale_date": to_iso_date(self.sale_date),
            "payment_method": self.payment_method,
            "is_wholesale": self.is_wholesale,
            "packaging_price": money_str(self.packaging_price),
            "suggested_total_price": money_str(self.suggested_total_price),
            "final_total_price": money_str(self.final_total_price),
            "discount_amount": money_str(self.discount_amount),
            "discount_percentage": money_str(self.discount_percentage),
            "product_count": self.product_count,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleProduct(db.Model):
    """Sale line with frozen name and price snapshots."""
    __tablename__ = "sale_products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    product_description_snapshot = db.Column(db.String(512), nullable=False)
    suggested_price_at_the_time = db.Column(db.Numeric(10, 2), nullable=False)
    price_at_the_time = db.Column(db.Numeric(10, 2), nullable=False)

    @property
    def line_total(self):
        return money(self.price_at_the_time * self.quantity)

    @property
    def suggested_line_total(self):
        return money(self.suggested_price_at_the_time * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_description": self.product_description_snapshot,
            "quantity": self.quantity,
            "suggested_unit_price": money_str(self.suggested_price_at_the_time),
            "unit_price": money_str(self.price_at_the_time),
            "suggested_line_total": money_str(self.suggested_line_total),
            "line_total": money_str(self.line_total),
        }
