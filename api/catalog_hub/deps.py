# catalog_hub/deps.py
"""
FastAPI dependencies: caller identity, the shared Database and services.
"""
from __future__ import annotations
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Path, Request

from catalog_hub.database import Database
from catalog_hub.models import Actor, MAX_ID
from catalog_hub.settings import settings
from catalog_hub.services.products import ProductService
from catalog_hub.services.product_variants import ProductVariantService
from catalog_hub.services.wastage import WastageService

# ids are BIGINT; anything past that range is rejected before it reaches the driver
PathId = Annotated[int, Path(ge=1, le=MAX_ID)]


def get_actor(
    x_user_id: Optional[int] = Header(default=None, ge=1, le=MAX_ID),
    x_organization_id: Optional[int] = Header(default=None, ge=1, le=MAX_ID),
) -> Actor:
    """Caller identity as forwarded by the authentication proxy."""
    if x_user_id is None or x_organization_id is None:
        raise HTTPException(401, detail="Missing X-User-Id / X-Organization-Id headers")
    return Actor(user_id=x_user_id, organization_id=x_organization_id)


def get_database(request: Request) -> Database:
    db = getattr(request.app.state, "database", None)
    if db is None:
        raise HTTPException(503, detail="Database not initialized")
    return db


def get_product_service(db: Database = Depends(get_database)) -> ProductService:
    return ProductService(db, default_uom_id=settings.DEFAULT_UOM_ID)


def get_variant_service(db: Database = Depends(get_database)) -> ProductVariantService:
    return ProductVariantService(db)


def get_wastage_service(db: Database = Depends(get_database)) -> WastageService:
    return WastageService(db, default_page_size=settings.DEFAULT_PAGE_SIZE)
