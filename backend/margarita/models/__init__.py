from .auth import User, SessionToken, ROLES
from .reference import Category, Location, Customer, Supplier, GENDERS
from .catalog import Material, Procedure, Product, ProductMaterial, ProductProcedure
from .sales import Sale, SaleProduct, PAYMENT_METHODS
from .purchases import Purchase, PurchaseMaterial, Expense, EXPENSE_TYPES
from .tasks import ToDoTask, TASK_STATUSES

__all__ = [
    'User', 'SessionToken', 'ROLES',
    'Category', 'Location', 'Customer', 'Supplier', 'GENDERS',
    'Material', 'Procedure', 'Product', 'ProductMaterial', 'ProductProcedure',
    'Sale', 'SaleProduct', 'PAYMENT_METHODS',
    'Purchase', 'PurchaseMaterial', 'Expense', 'EXPENSE_TYPES',
    'ToDoTask', 'TASK_STATUSES',
]
