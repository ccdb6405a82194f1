"""
Database module for the storefront catalog
"""
from .models import Base, Category, Product

__all__ = [
    "Base",
    "Category",
    "Product",
]
