"""Shared test fixtures: product builders and an in-memory catalogue."""
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.product import ProductSummary
from app.services.memory_store import InMemoryProductStore

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def build_product(index: int, **overrides) -> ProductSummary:
    data = {
        "id": f"p{index:03d}",
        "title": f"Listing {index}",
        "description": "",
        "slug": f"listing-{index}",
        "category": "other",
        "price": float(index * 100),
        "condition": "new",
        "created_at": BASE_TIME + timedelta(hours=index),
    }
    data.update(overrides)
    return ProductSummary(**data)


@pytest.fixture()
def make_product():
    return build_product


@pytest.fixture()
def catalogue() -> list[ProductSummary]:
    """A small mixed catalogue covering every facet."""
    return [
        build_product(
            1,
            title="PUBG Mobile account Conqueror",
            category="game_accounts",
            game_title="PUBG Mobile",
            platform="Mobile (Android)",
            price=4500,
            tags=["pubg", "conqueror"],
            location="Lahore",
            is_negotiable=True,
        ),
        build_product(
            2,
            title="PUBG Mobile 660 UC",
            category="in_game_currency",
            game_title="PUBG Mobile",
            platform="Mobile (iOS)",
            price=1200,
            tags=["pubg", "uc"],
            is_instant_delivery=True,
            location="Karachi",
        ),
        build_product(
            3,
            title="Valorant account Immortal",
            category="game_accounts",
            game_title="Valorant",
            platform="PC",
            price=9000,
            tags=["valorant"],
            condition="like_new",
            location="Islamabad",
        ),
        build_product(
            4,
            title="Steam wallet code 5000",
            category="gift_cards",
            platform="Steam",
            price=5000,
            tags=["steam", "wallet"],
            is_instant_delivery=True,
            is_featured=True,
        ),
        build_product(
            5,
            title="PS5 DualSense controller",
            category="gaming_hardware",
            platform="PlayStation 5",
            price=18000,
            condition="good",
            shipping_available=True,
            location="Lahore Cantt",
            tags=["controller"],
        ),
        build_product(
            6,
            title="Old PUBG Mobile account",
            category="game_accounts",
            game_title="PUBG Mobile",
            price=800,
            status="sold",
            tags=["pubg"],
        ),
    ]


@pytest.fixture()
def memory_store(catalogue) -> InMemoryProductStore:
    return InMemoryProductStore(catalogue)
