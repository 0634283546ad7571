from __future__ import annotations

from typing import Optional

from sqlalchemy import func, literal
from sqlalchemy.orm import Session

from menuops.models.allergen import Allergen
from menuops.models.attribute import Attribute
from menuops.models.menu_category import MenuCategory
from menuops.models.modifier_group import ModifierGroup
from menuops.models.restaurant import Restaurant
from menuops.models.subcategory import Subcategory

# collection -> (model, scope column); unscoped collections carry None
_COLLECTIONS = {
    "restaurant": (Restaurant, None),
    "category": (MenuCategory, MenuCategory.restaurant_id),
    "subcategory": (Subcategory, Subcategory.category_id),
    "modifier_group": (ModifierGroup, ModifierGroup.restaurant_id),
    "allergen": (Allergen, None),
    "attribute": (Attribute, None),
}


def normalize_name(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def resolve_natural_key(
    db: Session,
    collection: str,
    scope_id: Optional[str],
    name: Optional[str],
) -> Optional[str]:
    """Return the id of the entity named ``name`` inside ``scope_id``.

    Matching is an exact, case-insensitive comparison of the trimmed names.
    When duplicates exist the oldest record wins. ``None`` means "not found";
    the caller decides whether to create the entity.
    """
    try:
        model, scope_column = _COLLECTIONS[collection]
    except KeyError as exc:
        raise ValueError(f"Unknown catalog collection: {collection}") from exc

    if not normalize_name(name):
        return None

    # Both sides go through the database lower(); SQLite only folds ASCII.
    candidate = func.lower(func.trim(literal(name.strip())))
    query = db.query(model.id).filter(func.lower(func.trim(model.name)) == candidate)
    if scope_column is not None:
        if scope_id is None:
            return None
        query = query.filter(scope_column == scope_id)

    row = query.order_by(model.created_at.asc(), model.id.asc()).first()
    return row[0] if row else None
