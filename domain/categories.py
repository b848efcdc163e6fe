from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Category:
    id: int
    name: str


def category_key(name: str) -> str:
    """Comparison key for the case-insensitive category namespace."""
    return name.strip().casefold()


def canonicalize_category(raw: str | None, existing_names: Iterable[str]) -> str | None:
    """Resolve free-text input to an existing spelling, or accept it as new.

    Blank input means "no category".
    """
    name = (raw or "").strip()
    if not name:
        return None
    key = category_key(name)
    for existing in existing_names:
        if category_key(existing) == key:
            return existing
    return name


def find_collision(
    name: str, categories: Iterable[Category], exclude_id: int | None = None
) -> Category | None:
    key = category_key(name)
    for category in categories:
        if category.id == exclude_id:
            continue
        if category_key(category.name) == key:
            return category
    return None
