from __future__ import annotations

from ..extensions import db
from margarita.money import money, money_str
from margarita.time_utils import to_utc_z, to_iso_date

EXPENSE_TYPES = {
    "PURCHASE_MATERIALS": "Material purchases",
    "SALARY": "Salaries",
    "RENT": "Rent",
    "UTILITIES": "Utilities",
    "MARKETING": "Marketing",
    "EQUIPMENT": "Equipment",
    "INSURANCE": "Insurance",
    "TAXES": "Taxes",
    "MAINTENANCE": "Maintenance",
    "TRANSPORTATION": "Transportation",
    "ACCOUNTANT": "Accountant",
    "PROFESSIONAL_SERVICES": "Professional services",
    "OTHER": "Other",
}


class Purchase(db.Model):
    """
    Material purchase from a supplier.

    Purchases do not change product stock. Every purchase owns exactly one
    PURCHASE_MATERIALS expense carrying its total cost.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_purchase_date", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_date = db.Column(db.Date, nullable=False)
    total_cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    supplier = db.relationship("Supplier")
    lines = db.relationship(
        "PurchaseMaterial",
        cascade="all, delete-orphan",
        order_by="PurchaseMaterial.id",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "purchase_date": to_iso_date(self.purchase_date),
            "total_cost": money_str(self.total_cost),
            "item_count": len(self.lines),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseMaterial(db.Model):
    """Purchase line with frozen material name and unit price."""
    __tablename__ = "purchase_materials"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(10, 4), nullable=False)
    price_at_the_time = db.Column(db.Numeric(10, 2), nullable=False)
    material_description_snapshot = db.Column(db.String(255), nullable=False)

    @property
    def line_total(self):
        return money(self.price_at_the_time * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_id": self.material_id,
            "material_description": self.material_description_snapshot,
            "quantity": str(self.quantity),
            "unit_price": money_str(self.price_at_the_time),
            "line_total": money_str(self.line_total),
        }


class Expense(db.Model):
    """Business expense; purchase_id is set only for PURCHASE_MATERIALS expenses."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_expense_date", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    expense_type = db.Column(db.String(32), nullable=False, default="OTHER")
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, unique=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": money_str(self.amount),
            "expense_date": to_iso_date(self.expense_date),
            "expense_type": self.expense_type,
            "expense_type_label": EXPENSE_TYPES.get(self.expense_type, self.expense_type),
            "purchase_id": self.purchase_id,
            "created_at": to_utc_z(self.created_at),
        }
