"""Payload builders and row counters shared by the test modules."""

from typing import Any, Dict

from sqlalchemy import select, func

from catalog_hub.database import Database
from catalog_hub.models import ProductIn, VariantIn

EACH, KG, BOX = 1, 2, 3
RAW, FINISHED, TOOLS = 1, 2, 3
COLOR, SIZE = 1, 2
RED, BLUE, LARGE = 1, 2, 3
PRODUCT_TYPE, DAILY, EXPIRED, DAMAGED = 1, 2, 3, 4
PHOTO, DELETED_PHOTO = 1, 2


def variant_payload(name: str = "Default", **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "pvname": name,
        "pvdesc": f"{name} variant",
        "pvbarcode": None,
        "pvpurchaseprice": "12.50",
        "pvsalesprice": "20",
        "location": {
            "safetylevel": "5",
            "reorderlevel": "10",
            "min_stock_uom": EACH,
            "par_stock_uom": BOX,
            "openingstock": "100",
            "closingstock_on": [15, 1, 15],
        },
        "tax": {"taxrate": "18", "hsncode": "8471"},
        "purchaseUoms": [{"uomid": BOX, "is_default": True}, {"uomid": KG}],
        "consumptionUom": {"uomid": EACH},
    }
    payload.update(overrides)
    return payload


def product_payload(name: str = "Widget", variant_count: int = 1, **overrides: Any) -> ProductIn:
    data: Dict[str, Any] = {
        "proname": name,
        "prodescription": f"{name} description",
        "proconfig": 14,
        "prouom": EACH,
        "catids": [RAW],
    }
    if variant_count == 1:
        data["variant"] = variant_payload()
    else:
        data["variants"] = [variant_payload(f"V{i}") for i in range(1, variant_count + 1)]
    if "variants" in overrides:
        data.pop("variant", None)
    data.update(overrides)
    return ProductIn.model_validate(data)


def variant_in(name: str = "Extra", **overrides: Any) -> VariantIn:
    return VariantIn.model_validate(variant_payload(name, **overrides))


async def count_rows(db: Database, model, **filters: Any) -> int:
    async with db.session() as session:
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        return (await session.execute(stmt)).scalar_one()


ROW_ID_KEYS = {"pvid", "pvlid", "protaxid", "uommid", "pvamid", "pvamvid"}


def without_row_ids(value: Any) -> Any:
    """Drop ids of recreated child rows so two replace-all results compare equal."""
    if isinstance(value, dict):
        return {k: without_row_ids(v) for k, v in value.items() if k not in ROW_ID_KEYS}
    if isinstance(value, list):
        return [without_row_ids(v) for v in value]
    return value
