from __future__ import annotations

import pytest

from catalog import CATEGORY_NAMES, GROCERY_ITEMS, ItemCatalog, default_catalog


@pytest.fixture()
def catalog() -> ItemCatalog:
    return default_catalog()


@pytest.mark.parametrize("name", ["apples", "Apples", "  whole   milk ", "peanut butter"])
def test_exact_names_are_valid(catalog: ItemCatalog, name: str) -> None:
    assert catalog.is_valid(name)


def test_plural_and_singular_forms_are_valid(catalog: ItemCatalog) -> None:
    # "tortilla" is only listed in plural form, "kiwi" has both
    assert catalog.is_valid("tortilla")
    assert catalog.is_valid("pineapples")


def test_compound_names_are_valid_in_both_directions(catalog: ItemCatalog) -> None:
    assert catalog.is_valid("organic peanut butter")
    assert catalog.is_valid("cider vinegar")


@pytest.mark.parametrize("name", ["", "   ", "hello", "carburetor", "world peace"])
def test_non_grocery_names_are_rejected(catalog: ItemCatalog, name: str) -> None:
    assert not catalog.is_valid(name)


def test_best_match_prefers_exact_entry(catalog: ItemCatalog) -> None:
    assert catalog.best_match("Greek Yogurt") == "greek yogurt"


def test_best_match_prefers_longest_compound(catalog: ItemCatalog) -> None:
    assert catalog.best_match("organic greek yogurt") == "greek yogurt"


def test_best_match_resolves_plural(catalog: ItemCatalog) -> None:
    assert catalog.best_match("pineapples") == "pineapple"
    assert catalog.best_match("tortilla") == "tortillas"


def test_best_match_without_candidate(catalog: ItemCatalog) -> None:
    assert catalog.best_match("carburetor") is None
    assert catalog.best_match("") is None


def test_category_of_known_and_unknown_items(catalog: ItemCatalog) -> None:
    assert catalog.category_of("Bananas") == "fruits"
    assert catalog.category_of("ground beef") == "proteins"
    assert catalog.category_of("pineapples") == "fruits"
    assert catalog.category_of("carburetor") == "other"


def test_duplicate_entry_belongs_to_first_category(catalog: ItemCatalog) -> None:
    # ice cream is listed under dairy and frozen
    assert catalog.category_of("ice cream") == "dairy"


def test_every_category_has_a_display_name() -> None:
    assert set(GROCERY_ITEMS) <= set(CATEGORY_NAMES)


def test_custom_catalog() -> None:
    catalog = ItemCatalog({"spices": ["saffron", "star anise"]})

    assert catalog.categories == ("spices",)
    assert "Saffron" in catalog
    assert len(catalog) == 2
    assert catalog.is_valid("anise")
    assert not catalog.is_valid("apples")
    assert catalog.category_of("star anise") == "spices"


def test_default_catalog_is_shared() -> None:
    assert default_catalog() is default_catalog()
