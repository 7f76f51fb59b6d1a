# catalog_hub/services/__init__.py
"""
Business logic services for Catalog Hub.
"""
from catalog_hub.services.reference import ReferenceData
from catalog_hub.services.reader import ProductReader
from catalog_hub.services.variants import SubEntityWriter, VariantWriter
from catalog_hub.services.products import ProductService
from catalog_hub.services.product_variants import ProductVariantService
from catalog_hub.services.wastage import WastageService

__all__ = [
    "ReferenceData",
    "ProductReader",
    "SubEntityWriter",
    "VariantWriter",
    "ProductService",
    "ProductVariantService",
    "WastageService",
]
