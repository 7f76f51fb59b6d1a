"""Shared fixtures: an in-memory SQLite database seeded with reference data."""

import os
import tempfile

# settings are read at import time; keep test logs out of the repo
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="catalog-hub-logs-"))

import pytest

from catalog_hub.database import Database
from catalog_hub.db_models import (
    UnitOfMeasure, Category, Attribute, AttributeValue, MasterValue, UserImage,
    MasterGroup,
)
from catalog_hub.models import Actor
from catalog_hub.services.products import ProductService
from catalog_hub.services.product_variants import ProductVariantService
from catalog_hub.services.wastage import WastageService

from helpers import (
    EACH, KG, BOX, RAW, FINISHED, TOOLS, COLOR, SIZE, RED, BLUE, LARGE,
    PRODUCT_TYPE, DAILY, EXPIRED, DAMAGED, PHOTO, DELETED_PHOTO,
)


async def seed_reference_data(db: Database) -> None:
    async with db.transaction() as session:
        session.add_all([
            UnitOfMeasure(id=EACH, name="each"),
            UnitOfMeasure(id=KG, name="kg"),
            UnitOfMeasure(id=BOX, name="box"),
            Category(id=RAW, name="Raw stock"),
            Category(id=FINISHED, name="Finished goods"),
            Category(id=TOOLS, name="Tools"),
            Attribute(id=COLOR, name="Color"),
            Attribute(id=SIZE, name="Size"),
            UserImage(id=PHOTO, url="https://cdn.example.test/p/1.jpg"),
            UserImage(id=DELETED_PHOTO, url="https://cdn.example.test/p/2.jpg", is_deleted=True),
            MasterValue(id=PRODUCT_TYPE, master_id=MasterGroup.PRODUCT_TYPE.value, value="Stock item"),
            MasterValue(id=DAILY, master_id=MasterGroup.CLOSING_STOCK.value, value="Daily"),
            MasterValue(id=EXPIRED, master_id=MasterGroup.WASTAGE_TYPE.value, value="Expired"),
            MasterValue(id=DAMAGED, master_id=MasterGroup.WASTAGE_TYPE.value, value="Damaged"),
        ])
        await session.flush()
        session.add_all([
            AttributeValue(id=RED, attribute_id=COLOR, name="Red", color="#ff0000"),
            AttributeValue(id=BLUE, attribute_id=COLOR, name="Blue", color="#0000ff"),
            AttributeValue(id=LARGE, attribute_id=SIZE, name="L"),
        ])


@pytest.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    await seed_reference_data(db)
    yield db
    await db.dispose()


@pytest.fixture
def actor() -> Actor:
    return Actor(user_id=7, organization_id=100)


@pytest.fixture
def outsider() -> Actor:
    return Actor(user_id=8, organization_id=200)


@pytest.fixture
def products(database) -> ProductService:
    return ProductService(database, default_uom_id=EACH)


@pytest.fixture
def variants(database) -> ProductVariantService:
    return ProductVariantService(database)


@pytest.fixture
def wastages(database) -> WastageService:
    return WastageService(database, default_page_size=10)
