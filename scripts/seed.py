#!/usr/bin/env python3
"""Seed database with a demo catalog.

Creates:
- Manufacturers and vehicle models
- A small category tree (parents + subcategories)
- Items linked to categories and vehicle models, with images
- A few orders so recommendations have sales data
- The standard search synonym pairs

Seed script is idempotent: rows are looked up by natural key (name, slug,
sku, term pair) before insert.

Usage:
    alembic upgrade head
    python -m scripts.seed
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from partsearch.models import (
    Category,
    Item,
    ItemImage,
    Manufacturer,
    Order,
    OrderItem,
    SearchSynonym,
    VehicleModel,
    item_category,
    item_vehicle_models,
)
from partsearch.settings import get_settings

load_dotenv()

# ============================================================
# Catalog definitions
# ============================================================

# manufacturer -> [(model_name, variant, year_from, year_to)]
VEHICLES = {
    "Toyota": [("Corolla", "LE", 2014, 2019), ("Camry", "SE", 2018, 2023)],
    "Honda": [("Civic", "EX", 2016, 2021), ("Accord", None, 2018, 2022)],
    "Ford": [("Focus", "Titanium", 2012, 2018)],
}

# (slug, name, parent_slug)
CATEGORIES = [
    ("brakes", "Brakes", None),
    ("brake-pads", "Brake Pads", "brakes"),
    ("brake-fluids", "Brake Fluids", "brakes"),
    ("engine", "Engine", None),
    ("filters", "Filters", "engine"),
    ("oil-filters", "Oil Filters", "filters"),
    ("ignition", "Ignition", "engine"),
    ("electrical", "Electrical", None),
    ("batteries", "Batteries", "electrical"),
    ("wipers", "Wipers", None),
]

ITEMS = [
    {
        "sku": "BRK-PAD-001",
        "name": "Brake Pad Set",
        "description": "Ceramic front brake pads with wear sensor.",
        "price": 49.90,
        "sale_price": 44.90,
        "cost_price": 22.00,
        "categories": ["brake-pads"],
        "models": [("Toyota", "Corolla"), ("Toyota", "Camry")],
        "age_days": 12,
    },
    {
        "sku": "BRK-FLD-004",
        "name": "Brake Fluid DOT 4",
        "description": "Synthetic brake fluid, 1 litre.",
        "price": 12.50,
        "cost_price": 5.00,
        "is_universal": True,
        "categories": ["brake-fluids"],
        "models": [],
        "age_days": 90,
    },
    {
        "sku": "ENG-OIL-FLT-01",
        "name": "Oil Filter",
        "description": "Spin-on engine oil filter.",
        "price": 9.99,
        "cost_price": 3.50,
        "categories": ["oil-filters"],
        "models": [("Honda", "Civic"), ("Honda", "Accord")],
        "age_days": 40,
    },
    {
        "sku": "ELC-BAT-60",
        "name": "Car Battery 60Ah",
        "description": "Maintenance-free automotive battery, 540A cold cranking.",
        "price": 129.00,
        "cost_price": 80.00,
        "is_universal": True,
        "categories": ["batteries"],
        "models": [],
        "age_days": 200,
    },
    {
        "sku": "WPR-BLD-22",
        "name": "Windshield Wiper Blade 22in",
        "description": "Beam wiper blade for all seasons.",
        "price": 15.00,
        "cost_price": 4.00,
        "is_universal": True,
        "categories": ["wipers"],
        "models": [],
        "age_days": 5,
    },
    {
        "sku": "IGN-SPK-4",
        "name": "Spark Plug Set",
        "description": "Iridium spark plugs, set of four.",
        "price": 36.00,
        "cost_price": 18.00,
        "categories": ["ignition"],
        "models": [("Ford", "Focus")],
        "age_days": 60,
    },
    {
        "sku": "ENG-TBK-02",
        "name": "Timing Belt Kit",
        "description": "Timing belt with tensioner and idler pulley.",
        "price": 189.00,
        "cost_price": 110.00,
        "categories": ["engine"],
        "models": [("Honda", "Accord")],
        "age_days": 25,
    },
]

# (status, [(sku, quantity)])
ORDERS = [
    ("completed", [("BRK-PAD-001", 3), ("WPR-BLD-22", 2)]),
    ("completed", [("BRK-PAD-001", 1), ("ENG-OIL-FLT-01", 4)]),
    ("shipped", [("ELC-BAT-60", 1)]),
    ("draft", [("IGN-SPK-4", 10)]),
]

# (term, synonym, weight)
SYNONYMS = [
    ("brake pad", "brake pads", 1.0),
    ("brake pad", "brake shoe", 0.8),
    ("tire", "tyre", 1.0),
    ("tire", "wheel", 0.6),
    ("oil filter", "oil-filter", 1.0),
    ("air filter", "cabin filter", 0.7),
    ("spark plug", "spark plugs", 1.0),
    ("spark plug", "ignition plug", 0.8),
    ("battery", "car battery", 0.9),
    ("battery", "automotive battery", 0.8),
    ("headlight", "head lamp", 0.9),
    ("headlight", "headlight bulb", 0.7),
    ("wiper", "windshield wiper", 0.9),
    ("wiper", "wiper blade", 0.8),
    ("radiator", "radiator hose", 0.6),
    ("radiator", "cooling system", 0.5),
    ("transmission", "gearbox", 0.9),
    ("transmission", "transmission fluid", 0.7),
    ("engine oil", "motor oil", 1.0),
    ("engine oil", "lubricant", 0.6),
    ("shock absorber", "shock", 0.9),
    ("shock absorber", "strut", 0.8),
    ("alternator", "generator", 0.9),
    ("alternator", "charging system", 0.6),
    ("fuel pump", "fuel pump assembly", 0.8),
    ("fuel pump", "fuel system", 0.5),
    ("catalytic converter", "cat converter", 0.9),
    ("catalytic converter", "exhaust system", 0.4),
    ("timing belt", "timing chain", 0.7),
    ("timing belt", "cam belt", 1.0),
]


async def seed_database() -> None:
    """Seed database with demo data."""
    settings = get_settings()
    engine = create_async_engine(
        settings.async_database_url,
        echo=False,
        connect_args=settings.asyncpg_connect_args,
    )
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        print("Seeding database...")

        print("\nCreating manufacturers and vehicle models...")
        model_map = await seed_vehicles(session)

        print("\nCreating categories...")
        category_map = await seed_categories(session)

        print("\nCreating items...")
        await seed_items(session, category_map, model_map)

        print("\nCreating orders...")
        await seed_orders(session)

        print("\nCreating search synonyms...")
        await seed_synonyms(session)

        await session.commit()
        print("\nDatabase seeded successfully!")

    await engine.dispose()


async def seed_vehicles(session: AsyncSession) -> dict[tuple[str, str], int]:
    """Seed manufacturers + models and return (manufacturer, model_name) -> model id."""
    model_map: dict[tuple[str, str], int] = {}

    for manufacturer_name, models in VEHICLES.items():
        result = await session.execute(select(Manufacturer).where(Manufacturer.name == manufacturer_name))
        manufacturer = result.scalar_one_or_none()
        if manufacturer is None:
            manufacturer = Manufacturer(name=manufacturer_name)
            session.add(manufacturer)
            await session.flush()
            print(f"  + {manufacturer_name}")
        else:
            print(f"  = {manufacturer_name} (exists)")

        for model_name, variant, year_from, year_to in models:
            result = await session.execute(
                select(VehicleModel).where(
                    VehicleModel.manufacturer_id == manufacturer.id,
                    VehicleModel.model_name == model_name,
                )
            )
            model = result.scalar_one_or_none()
            if model is None:
                model = VehicleModel(
                    manufacturer_id=manufacturer.id,
                    model_name=model_name,
                    variant=variant,
                    year_from=year_from,
                    year_to=year_to,
                )
                session.add(model)
                await session.flush()
            model_map[(manufacturer_name, model_name)] = model.id

    return model_map


async def seed_categories(session: AsyncSession) -> dict[str, int]:
    """Seed the category tree and return slug -> id. Parents come first in CATEGORIES."""
    category_map: dict[str, int] = {}

    for slug, name, parent_slug in CATEGORIES:
        result = await session.execute(select(Category).where(Category.slug == slug))
        category = result.scalar_one_or_none()
        if category is None:
            category = Category(
                slug=slug,
                name=name,
                parent_id=category_map.get(parent_slug) if parent_slug else None,
            )
            session.add(category)
            await session.flush()
            print(f"  + {name}")
        else:
            print(f"  = {name} (exists)")
        category_map[slug] = category.id

    return category_map


async def seed_items(
    session: AsyncSession,
    category_map: dict[str, int],
    model_map: dict[tuple[str, str], int],
) -> None:
    now = datetime.now(timezone.utc)

    for entry in ITEMS:
        result = await session.execute(select(Item).where(Item.sku == entry["sku"]))
        if result.scalar_one_or_none() is not None:
            print(f"  = {entry['sku']} (exists)")
            continue

        created_at = now - timedelta(days=entry["age_days"])
        item = Item(
            sku=entry["sku"],
            name=entry["name"],
            description=entry["description"],
            is_universal=entry.get("is_universal", False),
            price=entry["price"],
            sale_price=entry.get("sale_price"),
            cost_price=entry.get("cost_price"),
            lead_time="2-3 days",
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(item)
        await session.flush()

        for slug in entry["categories"]:
            await session.execute(
                item_category.insert().values(item_id=item.id, category_id=category_map[slug])
            )
        for key in entry["models"]:
            await session.execute(
                item_vehicle_models.insert().values(item_id=item.id, vehicle_model_id=model_map[key])
            )
        session.add(
            ItemImage(
                item_id=item.id,
                src=f"https://cdn.example.com/items/{entry['sku'].lower()}.jpg",
                alt=entry["name"],
            )
        )
        print(f"  + {entry['sku']} {entry['name']}")


async def seed_orders(session: AsyncSession) -> None:
    existing = await session.execute(select(Order.id).limit(1))
    if existing.first() is not None:
        print("  = orders (exist)")
        return

    for status, lines in ORDERS:
        order = Order(status=status)
        session.add(order)
        await session.flush()
        for sku, quantity in lines:
            session.add(OrderItem(order_id=order.id, sku=sku, quantity=quantity))
        print(f"  + order {order.id} ({status}, {len(lines)} lines)")


async def seed_synonyms(session: AsyncSession) -> None:
    created = 0
    for term, synonym, weight in SYNONYMS:
        result = await session.execute(
            select(SearchSynonym).where(SearchSynonym.term == term, SearchSynonym.synonym == synonym)
        )
        if result.scalar_one_or_none() is None:
            session.add(SearchSynonym(term=term, synonym=synonym, weight=weight))
            created += 1
    print(f"  + {created} synonym pairs ({len(SYNONYMS) - created} existed)")


if __name__ == "__main__":
    asyncio.run(seed_database())
