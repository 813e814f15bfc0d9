"""
Category Colours and Catalog

Two concerns live here:
1. CategoryColorResolver - read-only lookup of a category's swatch by
   NAME. It never fails: orphaned categories (deleted from the catalog
   but still referenced by old expenses) get the fallback colour.
2. CategoryCatalog - the editable, ordered category list behind the
   settings screen. At least one category must always remain.

DESIGN DECISION: Deleting or renaming a category does NOT rewrite
expenses. Those records keep the old name and render with the fallback
swatch; the aggregator still counts them under their literal name.
"""

from typing import Any, Iterable, Optional

from pydantic import ValidationError

from fairshare.logs import get_logger
from fairshare.models.expense import (
    COLOR_PALETTE,
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_NAME,
    FALLBACK_COLOR,
    CategoryItem,
)


logger = get_logger(__name__)


class CategoryError(ValueError):
    """Invalid change to the category catalog."""
    pass


class CategoryNotFoundError(CategoryError):
    """No category with the given id."""
    pass


class LastCategoryError(CategoryError):
    """Attempted to delete the only remaining category."""
    pass


def coerce_categories(categories: Any) -> list[CategoryItem]:
    """
    CategoryItems from whatever the caller holds.

    Mappings (rows read from JSON or Sheets) are validated into
    CategoryItem; anything that doesn't validate is skipped with a warning.
    """
    if categories is None:
        return []
    if isinstance(categories, (str, bytes, dict)) or not isinstance(categories, Iterable):
        logger.warning("categories_not_a_list", type=type(categories).__name__)
        return []

    items = []
    for category in categories:
        if isinstance(category, CategoryItem):
            items.append(category)
            continue
        try:
            items.append(CategoryItem.model_validate(category))
        except ValidationError as e:
            logger.warning("category_entry_skipped", entry_type=type(category).__name__, error=str(e))
    return items


class CategoryColorResolver:
    """Name -> colour lookup over a snapshot of the category list."""

    def __init__(
        self,
        categories: Optional[Iterable[CategoryItem]] = None,
        fallback_color: str = FALLBACK_COLOR,
        default_label: str = DEFAULT_CATEGORY_NAME,
    ):
        self._colors: dict[str, str] = {}
        for category in coerce_categories(categories):
            # First entry wins if two categories share a name
            self._colors.setdefault(category.name, category.color)
        self._fallback_color = fallback_color
        self._default_label = default_label

    def color_for(self, category_name: Optional[str]) -> str:
        """Swatch for `category_name`, or the fallback colour."""
        if not isinstance(category_name, str):
            return self._fallback_color
        return self._colors.get(category_name.strip(), self._fallback_color)

    def label_for(self, category_name: Optional[str]) -> str:
        """Display label; blank names show as the default category."""
        if not isinstance(category_name, str) or not category_name.strip():
            return self._default_label
        return category_name.strip()

    def is_orphaned(self, category_name: Optional[str]) -> bool:
        return self.label_for(category_name) not in self._colors


def color_for(
    category_name: Optional[str],
    categories: Iterable[CategoryItem],
    fallback_color: str = FALLBACK_COLOR,
) -> str:
    """One-off colour lookup. Never raises."""
    return CategoryColorResolver(categories, fallback_color).color_for(category_name)


def next_palette_color(current: Optional[str] = None) -> str:
    """The palette colour after `current`; the first one if `current` isn't in the palette."""
    if current not in COLOR_PALETTE:
        return COLOR_PALETTE[0]
    return COLOR_PALETTE[(COLOR_PALETTE.index(current) + 1) % len(COLOR_PALETTE)]


class CategoryCatalog:
    """
    The ordered, editable category list.

    All mutators return the affected CategoryItem. Items are immutable,
    so updates replace the entry in place.
    """

    def __init__(self, categories: Optional[Iterable[CategoryItem]] = None):
        items = list(categories) if categories is not None else []
        self._items: list[CategoryItem] = items or list(DEFAULT_CATEGORIES)
        self._next_color = COLOR_PALETTE[0]

    @property
    def categories(self) -> list[CategoryItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, category_id: str) -> Optional[CategoryItem]:
        for item in self._items:
            if item.id == category_id:
                return item
        return None

    def find_by_name(self, name: str) -> Optional[CategoryItem]:
        for item in self._items:
            if item.name == name:
                return item
        return None

    def add_category(self, name: str, color: Optional[str] = None) -> CategoryItem:
        """
        Append a new category.

        Without an explicit colour the catalog cycles through the palette.
        """
        name = (name or "").strip()
        if not name:
            raise CategoryError("Category name cannot be empty")

        if color is None:
            color = self._next_color
            self._next_color = next_palette_color(color)

        item = CategoryItem(name=name, color=color)
        self._items.append(item)
        return item

    def update_category(self, category_id: str, name: str, color: str) -> CategoryItem:
        """Rename and/or recolour. Expenses using the old name become orphans."""
        name = (name or "").strip()
        if not name:
            raise CategoryError("Category name cannot be empty")

        for index, item in enumerate(self._items):
            if item.id == category_id:
                updated = item.model_copy(update={"name": name, "color": color or item.color})
                self._items[index] = updated
                return updated

        raise CategoryNotFoundError(f"Category not found: {category_id}")

    def delete_category(self, category_id: str) -> CategoryItem:
        """Remove a category, refusing to remove the last one."""
        item = self.get(category_id)
        if item is None:
            raise CategoryNotFoundError(f"Category not found: {category_id}")
        if len(self._items) <= 1:
            raise LastCategoryError("You must keep at least one category.")

        self._items = [c for c in self._items if c.id != category_id]
        return item

    def resolver(self, fallback_color: str = FALLBACK_COLOR) -> CategoryColorResolver:
        return CategoryColorResolver(self._items, fallback_color)
