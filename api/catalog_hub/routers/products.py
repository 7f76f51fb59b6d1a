# catalog_hub/routers/products.py
"""
Products Router.

Thin HTTP layer over ProductService / ProductVariantService. Service
exceptions are mapped to responses by the handlers registered in main.py.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from catalog_hub.deps import PathId, get_actor, get_product_service, get_variant_service
from catalog_hub.models import (
    Actor, MAX_ID, MAX_INT32, ProductIn, ProductFilterIn, VariantIn, VariantUpdateIn,
    FixedAssetIn, FixedAssetUpdateIn,
)
from catalog_hub.services.products import ProductService
from catalog_hub.services.product_variants import ProductVariantService

router = APIRouter(prefix="/products", tags=["Products"])


# ============================================================================
# Static paths first: they would otherwise match /{product_id}
# ============================================================================

@router.get("/modal")
async def product_modal(
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.product_modal(actor)


@router.post("/filter")
async def filter_products(
    criteria: ProductFilterIn,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.filter(criteria, actor)


@router.get("/fixed-asset/modal")
async def fixed_asset_modal(
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.fixed_asset_modal(actor)


@router.post("/fixed-asset", status_code=201)
async def create_fixed_asset(
    payload: FixedAssetIn,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.create_fixed_asset(payload, actor)


@router.get("/fixed-asset/{product_id}")
async def get_fixed_asset(
    product_id: PathId,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.get_fixed_asset(product_id, actor)


@router.put("/fixed-asset/{product_id}")
async def update_fixed_asset(
    product_id: PathId,
    payload: FixedAssetUpdateIn,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.update_fixed_asset(product_id, payload, actor)


# ============================================================================
# Product aggregate
# ============================================================================

@router.post("", status_code=201)
async def create_product(
    payload: ProductIn,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.create(payload, actor)


@router.get("")
async def list_products(
    search: Optional[str] = Query(None),
    category_id: Optional[int] = Query(None, ge=1, le=MAX_ID),
    limit: Optional[int] = Query(None, ge=1, le=MAX_INT32),
    offset: Optional[int] = Query(None, ge=0, le=MAX_ID),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.list_products(actor, search, category_id, limit, offset)


@router.get("/{product_id}")
async def get_product(
    product_id: PathId,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.get(product_id, actor)


@router.put("/{product_id}")
async def update_product(
    product_id: PathId,
    payload: ProductIn,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.update(product_id, payload, actor)


@router.delete("/{product_id}")
async def delete_product(
    product_id: PathId,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return await service.delete(product_id, actor)


# ============================================================================
# Variants
# ============================================================================

@router.post("/{product_id}/variants", status_code=201)
async def create_variant(
    product_id: PathId,
    payload: VariantIn,
    actor: Actor = Depends(get_actor),
    service: ProductVariantService = Depends(get_variant_service),
) -> Dict[str, Any]:
    return await service.create_variant(product_id, payload, actor)


@router.get("/{product_id}/variants")
async def list_variants(
    product_id: PathId,
    actor: Actor = Depends(get_actor),
    service: ProductVariantService = Depends(get_variant_service),
) -> List[Dict[str, Any]]:
    return await service.list_variants(product_id, actor)


@router.get("/{product_id}/variants/{variant_id}")
async def get_variant(
    product_id: PathId,
    variant_id: PathId,
    actor: Actor = Depends(get_actor),
    service: ProductVariantService = Depends(get_variant_service),
) -> Dict[str, Any]:
    return await service.get_variant(product_id, variant_id, actor)


@router.put("/{product_id}/variants/{variant_id}")
async def update_variant(
    product_id: PathId,
    variant_id: PathId,
    payload: VariantUpdateIn,
    actor: Actor = Depends(get_actor),
    service: ProductVariantService = Depends(get_variant_service),
) -> Dict[str, Any]:
    return await service.update_variant(product_id, variant_id, payload, actor)


@router.delete("/{product_id}/variants/{variant_id}")
async def delete_variant(
    product_id: PathId,
    variant_id: PathId,
    actor: Actor = Depends(get_actor),
    service: ProductVariantService = Depends(get_variant_service),
) -> Dict[str, Any]:
    return await service.delete_variant(product_id, variant_id, actor)
