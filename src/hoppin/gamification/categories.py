"""The eight high-level place categories and place-type mapping.

  1: Explore     5: Relax
  2: Refresh     6: Wellbeing
  3: Entertain   7: Emergency
  4: ShopStop    8: Services
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

MIN_CATEGORY_ID = 1
MAX_CATEGORY_ID = 8


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    # Matched as substrings of the lower-cased place type.
    type_patterns: tuple[str, ...]
    # Matched only when the place type is exactly equal.
    exact_types: tuple[str, ...] = ()

    def matches(self, place_type: str) -> bool:
        return place_type in self.exact_types or any(p in place_type for p in self.type_patterns)


CATEGORIES: tuple[Category, ...] = (
    Category(1, "Explore", ("tourist_attraction", "museum", "art_gallery", "park")),
    Category(2, "Refresh", ("restaurant", "cafe", "bar", "bakery")),
    Category(3, "Entertain", ("movie_theater", "night_club", "bowling_alley", "casino")),
    Category(
        4, "ShopStop",
        ("shopping_mall", "clothing_store", "department_store", "supermarket"),
        exact_types=("store",),
    ),
    Category(5, "Relax", ("spa", "lodging", "campground")),
    Category(6, "Wellbeing", ("gym", "pharmacy", "doctor", "beauty_salon")),
    Category(7, "Emergency", ("hospital", "police", "fire_station")),
    Category(
        8, "Services",
        ("post_office", "bank", "gas_station", "car_repair"),
        exact_types=("atm",),
    ),
)

CATEGORY_BY_ID: dict[int, Category] = {c.id: c for c in CATEGORIES}


def is_valid_category(category_id: object) -> bool:
    return (
        isinstance(category_id, int)
        and not isinstance(category_id, bool)
        and MIN_CATEGORY_ID <= category_id <= MAX_CATEGORY_ID
    )


def category_for_place_types(place_types: Iterable[str] | None) -> int | None:
    """Map provider place types onto a category id, first category wins."""
    if not place_types:
        return None
    names = [t.lower() for t in place_types]
    for category in CATEGORIES:
        if any(category.matches(name) for name in names):
            return category.id
    return None
