from __future__ import annotations

from ..extensions import db
from margarita.money import money_str
from margarita.time_utils import to_utc_z


class Material(db.Model):
    """Raw material with its current unit cost (silver wire per gram, beads per piece...)."""
    __tablename__ = "materials"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    current_unit_cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    unit_of_measure = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "current_unit_cost": money_str(self.current_unit_cost),
            "unit_of_measure": self.unit_of_measure,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Procedure(db.Model):
    """Named manufacturing step (plating, polishing, engraving...)."""
    __tablename__ = "procedures"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Catalog product.

    suggested_* prices are derived from the recipe (materials, labor minutes,
    procedures) and recomputed whenever the recipe changes. final_* prices are
    what the business actually charges and are edited by hand. Sales snapshot
    the final price at the time of sale.

    stock has no lower bound; negative stock means oversold.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_category", "is_active", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    minutes_to_make = db.Column(db.Integer, nullable=False, default=0)

    suggested_retail_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    suggested_wholesale_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    final_retail_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    final_wholesale_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=True, default=0)
    low_stock_alert = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    category = db.relationship("Category")
    materials = db.relationship(
        "ProductMaterial",
        cascade="all, delete-orphan",
        order_by="ProductMaterial.id",
    )
    procedures = db.relationship(
        "ProductProcedure",
        cascade="all, delete-orphan",
        order_by="ProductProcedure.id",
    )

    @property
    def stock_status(self) -> str:
        from margarita.services.stock_service import classify_stock
        return classify_stock(self.stock, self.low_stock_alert)

    def to_dict(self, include_recipe: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "minutes_to_make": self.minutes_to_make,
            "suggested_retail_price": money_str(self.suggested_retail_price),
            "suggested_wholesale_price": money_str(self.suggested_wholesale_price),
            "final_retail_price": money_str(self.final_retail_price),
            "final_wholesale_price": money_str(self.final_wholesale_price),
            "stock": self.stock,
            "low_stock_alert": self.low_stock_alert,
            "stock_status": self.stock_status,
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_recipe:
            data["materials"] = [m.to_dict() for m in self.materials]
            data["procedures"] = [p.to_dict() for p in self.procedures]
        return data


class ProductMaterial(db.Model):
    """Recipe line: how much of a material goes into one product."""
    __tablename__ = "product_materials"
    __table_args__ = (
        db.UniqueConstraint("product_id", "material_id", name="uq_product_materials_product_material"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=True, index=True)
    quantity = db.Column(db.Numeric(10, 4), nullable=False)

    material = db.relationship("Material")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_id": self.material_id,
            "material_name": self.material.name if self.material else None,
            "unit_of_measure": self.material.unit_of_measure if self.material else None,
            "unit_cost": money_str(self.material.current_unit_cost) if self.material else None,
            "quantity": str(self.quantity),
        }


class ProductProcedure(db.Model):
    """Recipe line: what a procedure costs for one product."""
    __tablename__ = "product_procedures"
    __table_args__ = (
        db.UniqueConstraint("product_id", "procedure_id", name="uq_product_procedures_product_procedure"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id"), nullable=True, index=True)
    cost = db.Column(db.Numeric(10, 2), nullable=False)

    procedure = db.relationship("Procedure")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "procedure_id": self.procedure_id,
            "procedure_name": self.procedure.name if self.procedure else None,
            "cost": money_str(self.cost),
        }
