"""Place category mapping tests."""

from __future__ import annotations

import pytest

from hoppin.gamification.categories import (
    CATEGORIES,
    CATEGORY_BY_ID,
    category_for_place_types,
    is_valid_category,
)


class TestCategoryCatalogue:
    def test_eight_categories(self):
        assert [c.id for c in CATEGORIES] == list(range(1, 9))
        assert CATEGORY_BY_ID[4].name == "ShopStop"
        assert CATEGORY_BY_ID[8].name == "Services"


class TestCategoryForPlaceTypes:
    """Test provider place types to category ids."""

    @pytest.mark.parametrize(
        ("types", "expected"),
        [
            (["museum"], 1),
            (["cafe", "food"], 2),
            (["movie_theater"], 3),
            (["store"], 4),
            (["clothing_store"], 4),
            (["lodging"], 5),
            (["gym"], 6),
            (["hospital"], 7),
            (["atm"], 8),
            (["ATM"], 8),
            (["bank", "finance"], 8),
        ],
    )
    def test_known_types(self, types, expected):
        assert category_for_place_types(types) == expected

    def test_first_category_wins(self):
        assert category_for_place_types(["restaurant", "tourist_attraction"]) == 1

    def test_exact_types_need_exact_match(self):
        assert category_for_place_types(["hardware_store"]) is None

    @pytest.mark.parametrize("types", [None, [], ["point_of_interest"], ["locality"]])
    def test_unknown_types(self, types):
        assert category_for_place_types(types) is None


class TestIsValidCategory:
    @pytest.mark.parametrize("category_id", [1, 4, 8])
    def test_valid(self, category_id):
        assert is_valid_category(category_id)

    @pytest.mark.parametrize("category_id", [0, 9, -1, True, "2", 2.0, None])
    def test_invalid(self, category_id):
        assert not is_valid_category(category_id)
