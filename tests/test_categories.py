"""Tests for category colours and the editable catalog."""

import pytest

from fairshare.ledger.categories import (
    CategoryCatalog,
    CategoryColorResolver,
    CategoryError,
    CategoryNotFoundError,
    LastCategoryError,
    coerce_categories,
    color_for,
    next_palette_color,
)
from fairshare.models.expense import (
    COLOR_PALETTE,
    DEFAULT_CATEGORIES,
    FALLBACK_COLOR,
    CategoryItem,
)


class TestCategoryColorResolver:
    """Name to swatch lookup."""

    def test_known_category(self):
        resolver = CategoryColorResolver(DEFAULT_CATEGORIES)
        assert resolver.color_for("Groceries") == "#34d399"

    def test_orphaned_category_gets_fallback(self):
        resolver = CategoryColorResolver(DEFAULT_CATEGORIES)
        assert resolver.color_for("Pet Supplies") == FALLBACK_COLOR
        assert resolver.is_orphaned("Pet Supplies")
        assert not resolver.is_orphaned("Dining")

    @pytest.mark.parametrize("name", [None, "", 42])
    def test_bad_names_get_fallback(self, name):
        assert CategoryColorResolver(DEFAULT_CATEGORIES).color_for(name) == FALLBACK_COLOR

    def test_custom_fallback(self):
        resolver = CategoryColorResolver([], fallback_color="#000000")
        assert resolver.color_for("Dining") == "#000000"

    def test_first_duplicate_wins(self):
        resolver = CategoryColorResolver([
            CategoryItem(id="1", name="Dining", color="#111111"),
            CategoryItem(id="2", name="Dining", color="#222222"),
        ])
        assert resolver.color_for("Dining") == "#111111"

    def test_label_for_blank(self):
        resolver = CategoryColorResolver(DEFAULT_CATEGORIES)
        assert resolver.label_for("  ") == "Other"
        assert resolver.label_for(" Dining ") == "Dining"

    def test_module_level_lookup(self):
        assert color_for("Transport", DEFAULT_CATEGORIES) == "#60a5fa"
        assert color_for("Nope", DEFAULT_CATEGORIES, "#ffffff") == "#ffffff"

    def test_mapping_entries_accepted(self):
        assert color_for("Dining", [{"name": "Dining", "color": "#fff"}]) == "#fff"

    def test_unusable_entries_skipped(self):
        resolver = CategoryColorResolver([
            None,
            42,
            {"color": "#000000"},
            {"name": "Dining", "color": "#123456"},
        ])
        assert resolver.color_for("Dining") == "#123456"
        assert resolver.is_orphaned("Groceries")

    @pytest.mark.parametrize("categories", [
        "Dining",
        {"name": "Dining", "color": "#123456"},
        42,
    ])
    def test_non_list_catalog_gives_fallback(self, categories):
        assert color_for("Dining", categories) == FALLBACK_COLOR


class TestCoerceCategories:
    def test_none_is_empty(self):
        assert coerce_categories(None) == []

    def test_items_kept_and_rows_validated(self):
        items = coerce_categories([
            DEFAULT_CATEGORIES[0],
            {"id": "x", "name": " Pets ", "color": "#abcdef"},
            {"name": ""},
        ])
        assert items[0] is DEFAULT_CATEGORIES[0]
        assert items[1] == CategoryItem(id="x", name="Pets", color="#abcdef")
        assert len(items) == 2


class TestPalette:
    """Palette cycling for new categories."""

    def test_next_color(self):
        assert next_palette_color(COLOR_PALETTE[0]) == COLOR_PALETTE[1]

    def test_wraps_around(self):
        assert next_palette_color(COLOR_PALETTE[-1]) == COLOR_PALETTE[0]

    def test_unknown_starts_at_beginning(self):
        assert next_palette_color("#123456") == COLOR_PALETTE[0]
        assert next_palette_color() == COLOR_PALETTE[0]


class TestCategoryCatalog:
    """The editable category list."""

    def test_defaults_when_empty(self):
        assert CategoryCatalog().categories == DEFAULT_CATEGORIES
        assert len(CategoryCatalog([])) == 6

    def test_add_cycles_palette(self):
        catalog = CategoryCatalog()
        first = catalog.add_category("Pets")
        second = catalog.add_category("Gifts")

        assert first.color == COLOR_PALETTE[0]
        assert second.color == COLOR_PALETTE[1]
        assert catalog.categories[-1] == second
        assert first.id != second.id

    def test_add_with_explicit_color(self):
        item = CategoryCatalog().add_category("  Pets ", "#abcdef")
        assert item.name == "Pets"
        assert item.color == "#abcdef"

    def test_add_blank_name_rejected(self):
        with pytest.raises(CategoryError):
            CategoryCatalog().add_category("   ")

    def test_update_keeps_position(self):
        catalog = CategoryCatalog()
        updated = catalog.update_category("3", "Eating Out", "#000000")

        assert catalog.categories[2] == updated
        assert catalog.find_by_name("Dining") is None
        assert catalog.get("3").name == "Eating Out"

    def test_update_without_color_keeps_color(self):
        updated = CategoryCatalog().update_category("3", "Eating Out", "")
        assert updated.color == "#fbbf24"

    def test_update_unknown(self):
        with pytest.raises(CategoryNotFoundError):
            CategoryCatalog().update_category("missing", "X", "#000000")

    def test_rename_orphans_old_name(self):
        """Expenses using the old name fall back to the neutral swatch."""
        catalog = CategoryCatalog()
        catalog.update_category("3", "Eating Out", "#fbbf24")
        resolver = catalog.resolver()

        assert resolver.color_for("Dining") == FALLBACK_COLOR
        assert resolver.color_for("Eating Out") == "#fbbf24"

    def test_delete(self):
        catalog = CategoryCatalog()
        removed = catalog.delete_category("1")

        assert removed.name == "Groceries"
        assert len(catalog) == 5
        assert catalog.get("1") is None

    def test_delete_unknown(self):
        with pytest.raises(CategoryNotFoundError):
            CategoryCatalog().delete_category("missing")

    def test_cannot_delete_last_category(self):
        catalog = CategoryCatalog([CategoryItem(id="x", name="Only")])
        with pytest.raises(LastCategoryError, match="at least one category"):
            catalog.delete_category("x")
        assert len(catalog) == 1
