# catalog_hub/routers/wastage.py
"""
Product Wastage Router. Every response is wrapped as {success, data}.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from catalog_hub.deps import PathId, get_actor, get_wastage_service
from catalog_hub.models import Actor, WastageIn, WastageUpdateIn, WastageListIn
from catalog_hub.services.wastage import WastageService

router = APIRouter(prefix="/prowastage", tags=["Wastage"])


def _ok(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


@router.get("/modal")
async def wastage_modal(
    proisfa: Optional[bool] = Query(None),
    actor: Actor = Depends(get_actor),
    service: WastageService = Depends(get_wastage_service),
):
    return _ok(await service.modal(actor, proisfa))


@router.post("/list")
async def list_wastages(
    criteria: WastageListIn,
    actor: Actor = Depends(get_actor),
    service: WastageService = Depends(get_wastage_service),
):
    return _ok(await service.list_wastages(criteria, actor))


@router.post("", status_code=201)
async def create_wastage(
    payload: WastageIn,
    actor: Actor = Depends(get_actor),
    service: WastageService = Depends(get_wastage_service),
):
    return _ok(await service.create(payload, actor))


@router.get("/{wastage_id}")
async def get_wastage(
    wastage_id: PathId,
    actor: Actor = Depends(get_actor),
    service: WastageService = Depends(get_wastage_service),
):
    return _ok(await service.get(wastage_id, actor))


@router.put("/{wastage_id}")
async def update_wastage(
    wastage_id: PathId,
    payload: WastageUpdateIn,
    actor: Actor = Depends(get_actor),
    service: WastageService = Depends(get_wastage_service),
):
    return _ok(await service.update(wastage_id, payload, actor))


@router.delete("/{wastage_id}")
async def delete_wastage(
    wastage_id: PathId,
    actor: Actor = Depends(get_actor),
    service: WastageService = Depends(get_wastage_service),
):
    return _ok(await service.delete(wastage_id, actor))
