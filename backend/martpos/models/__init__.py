from .catalog import Product, Category
from .sales import Sale, SaleItem

__all__ = [
    'Product', 'Category',
    'Sale', 'SaleItem',
]
