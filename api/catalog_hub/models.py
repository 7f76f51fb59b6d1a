# catalog_hub/models.py
"""
Request payloads.

Field names are the public wire names of the catalog API. Every model
rejects keys it does not declare, so nothing is forwarded to the store
unless it is listed here.
"""
from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Annotated, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from catalog_hub.db_models import ProductConfig

MAX_ID = 2**63 - 1
MAX_INT32 = 2**31 - 1

# BIGINT keys and INTEGER columns
Id = Annotated[int, Field(ge=1, le=MAX_ID)]
Int32 = Annotated[int, Field(ge=0, le=MAX_INT32)]

# precision and scale follow the Numeric columns they are written to
Price = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=4)]
Quantity = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=3)]
Percent = Annotated[Decimal, Field(ge=0, le=100, max_digits=7, decimal_places=4)]
TaxRate = Annotated[Decimal, Field(ge=0, le=100, max_digits=5, decimal_places=2)]


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Actor(BaseModel):
    """Caller identity handed over by the authentication layer."""
    model_config = ConfigDict(frozen=True)

    user_id: Id
    organization_id: Id


# ============================================================================
# Variant sub-entities
# ============================================================================

class LocationIn(StrictModel):
    safetylevel: Quantity = Decimal("0")
    reorderlevel: Quantity = Decimal("0")
    min_stock_uom: Id
    par_stock_uom: Id
    openingstock: Quantity = Decimal("0")
    closingstock: Quantity = Decimal("0")
    closingstock_on: List[int] = Field(default_factory=list)
    autorenew: bool = False

    @field_validator("closingstock_on")
    @classmethod
    def _days_of_month(cls, v: List[int]) -> List[int]:
        bad = [d for d in v if d < 1 or d > 31]
        if bad:
            raise ValueError(f"closingstock_on days must be within 1-31, got {bad}")
        return sorted(set(v))


class TaxIn(StrictModel):
    taxrate: TaxRate = Decimal("0")
    hsncode: Optional[str] = None


class UomRefIn(StrictModel):
    uomid: Id


class PurchaseUomIn(UomRefIn):
    is_default: bool = False


class AttributeValueIn(StrictModel):
    avid: Id
    pvamvcolor: Optional[str] = None
    umid: Optional[Id] = None
    displayorder: Int32 = 0


class AttributeMappingIn(StrictModel):
    attributeid: Id
    attrtextprompt: Optional[str] = None
    isrequired: bool = False
    controltype: Optional[Int32] = None
    displayorder: Int32 = 0
    pvamvaluemodels: List[AttributeValueIn] = Field(default_factory=list)


class VariantIn(StrictModel):
    pvname: str = ""
    pvdesc: str = ""
    pvbarcode: Optional[str] = None
    pvpurchaseprice: Price = Decimal("0")
    pvsalesprice: Price = Decimal("0")
    reconciliation_price: Price = Decimal("0")
    normal_loss: Percent = Decimal("0")
    location: Optional[LocationIn] = None
    tax: Optional[TaxIn] = None
    purchaseUoms: List[PurchaseUomIn] = Field(default_factory=list)
    consumptionUom: Optional[UomRefIn] = None
    pvamappings: List[AttributeMappingIn] = Field(default_factory=list)

    @field_validator("pvbarcode")
    @classmethod
    def _blank_barcode(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _single_default_purchase_uom(self) -> "VariantIn":
        defaults = sum(1 for u in self.purchaseUoms if u.is_default)
        if defaults > 1:
            raise ValueError("only one purchase UOM can be marked is_default")
        return self


class VariantUpdateIn(StrictModel):
    pvname: Optional[str] = None
    pvdesc: Optional[str] = None
    pvbarcode: Optional[str] = None
    pvpurchaseprice: Optional[Price] = None
    pvsalesprice: Optional[Price] = None
    reconciliation_price: Optional[Price] = None
    normal_loss: Optional[Percent] = None
    location: Optional[LocationIn] = None
    tax: Optional[TaxIn] = None


# ============================================================================
# Products
# ============================================================================

def _check_config(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    allowed = {c.value for c in ProductConfig}
    if v not in allowed:
        raise ValueError(f"proconfig must be one of {sorted(allowed)}")
    return v


class ProductIn(StrictModel):
    proname: str
    prodescription: Optional[str] = None
    proconfig: Optional[Int32] = None
    prouom: Id
    proisfa: bool = False
    # accepted for compatibility; always recomputed from the variant count
    hasvarient: Optional[bool] = None
    catids: List[Id] = Field(default_factory=list)
    productimgid: Optional[Id] = None
    variant: Optional[VariantIn] = None
    variants: Optional[List[VariantIn]] = None

    @field_validator("proname")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("proname is required")
        return v

    @field_validator("proconfig")
    @classmethod
    def _known_config(cls, v: Optional[int]) -> Optional[int]:
        return _check_config(v)

    @model_validator(mode="after")
    def _variant_shape(self) -> "ProductIn":
        if self.variant is not None and self.variants is not None:
            raise ValueError("send either 'variant' or 'variants', not both")
        if self.variant is None and not self.variants:
            raise ValueError("a product needs 'variant' or a non-empty 'variants' list")
        return self

    @property
    def variant_payloads(self) -> List[VariantIn]:
        """Submitted variants as a list, whichever shape was sent."""
        if self.variants is not None:
            return list(self.variants)
        return [self.variant]


class ProductFilterIn(StrictModel):
    proname: Optional[str] = None
    proconfig: Optional[Int32] = None
    catid: Optional[Id] = None
    isfa: Optional[bool] = None
    page: Optional[int] = Field(default=None, ge=1, le=MAX_INT32)
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_INT32)

    @field_validator("page", "limit", mode="before")
    @classmethod
    def _empty_is_none(cls, v):
        if v == "":
            return None
        return v

    @property
    def is_paged(self) -> bool:
        return self.page is not None and self.limit is not None


# ============================================================================
# Fixed assets
# ============================================================================

class FixedAssetLocationIn(StrictModel):
    openingstock: Quantity = Decimal("0")
    reorderlevel: Quantity = Decimal("0")


class FixedAssetIn(StrictModel):
    proname: str
    prodescription: str
    catids: List[Id] = Field(min_length=1)
    location: FixedAssetLocationIn

    @field_validator("proname", "prodescription")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class FixedAssetUpdateIn(StrictModel):
    proname: Optional[str] = None
    prodescription: Optional[str] = None
    catids: Optional[List[Id]] = None
    location: Optional[FixedAssetLocationIn] = None


# ============================================================================
# Wastage
# ============================================================================

class WastageIn(StrictModel):
    wastageno: Optional[Int32] = None
    seriesid: Optional[Id] = None
    proid: Id
    pvid: Optional[Id] = None
    # copied from the product on create
    proisfa: Optional[bool] = None
    wastageqty: Quantity = Decimal("0")
    wastagevalue: Price = Decimal("0")
    wastagedate: date
    dom: Optional[date] = None
    doe: Optional[date] = None
    bcode: Optional[str] = None
    fcode: Optional[str] = None
    remarks: Optional[str] = None
    uomid: Optional[Id] = None
    uaid: Optional[Id] = None
    wastagetype: Optional[Id] = None
    attachments: List[Id] = Field(default_factory=list)


class WastageUpdateIn(StrictModel):
    proid: Optional[Id] = None
    pvid: Optional[Id] = None
    wastageqty: Optional[Quantity] = None
    wastagevalue: Optional[Price] = None
    wastagedate: Optional[date] = None
    remarks: Optional[str] = None
    wastagetype: Optional[Id] = None


class WastageListIn(StrictModel):
    page: int = Field(default=1, ge=1, le=MAX_INT32)
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_INT32)
    proisfa: Optional[bool] = None
    proid: Optional[Id] = None
    pvid: Optional[Id] = None
    wastagetype: Optional[Id] = None
    seriesid: Optional[Id] = None
    uaid: Optional[Id] = None
    uomid: Optional[Id] = None
