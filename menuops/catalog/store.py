from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from menuops.catalog.natural_keys import resolve_natural_key
from menuops.models.allergen import Allergen, MenuItemAllergen
from menuops.models.attribute import Attribute
from menuops.models.menu_category import MenuCategory
from menuops.models.menu_item import MenuItem
from menuops.models.menu_item_modifier_group import MenuItemModifierGroup
from menuops.models.modifier_group import ModifierGroup
from menuops.models.modifier_item import ModifierItem
from menuops.models.restaurant import Restaurant
from menuops.models.subcategory import Subcategory
from menuops.services.import_errors import CatalogStoreError

logger = logging.getLogger(__name__)

MENU_ITEM_FIELDS = frozenset(
    {
        "tenant_id",
        "category_id",
        "subcategory_id",
        "item_code",
        "name",
        "display_name",
        "description",
        "price",
        "currency",
        "image_url",
        "availability_flag",
        "sold_out",
        "bogo",
        "sort_order",
        "prep_time",
        "calories",
        "portion",
        "attributes_json",
    }
)


class CatalogStore(ABC):
    """Create/find/update/delete primitives over the catalog collections."""

    @abstractmethod
    def get_restaurant(self, restaurant_id: Optional[str]) -> Optional[Restaurant]:
        """Restaurant by id, or None."""

    @abstractmethod
    def find_restaurant_by_name(self, name: Optional[str]) -> Optional[Restaurant]:
        """Restaurant by case-insensitive name, or None."""

    @abstractmethod
    def find_category(self, restaurant_id: str, name: str) -> Optional[MenuCategory]:
        """Category by natural key inside a restaurant."""

    @abstractmethod
    def create_category(
        self,
        *,
        restaurant_id: str,
        name: str,
        description: str = "",
        sort_order: int = 0,
        active: bool = True,
    ) -> MenuCategory:
        """Persist a new category."""

    @abstractmethod
    def count_categories(self, restaurant_id: str) -> int:
        """Number of categories the restaurant already has."""

    @abstractmethod
    def find_subcategory(self, category_id: str, name: str) -> Optional[Subcategory]:
        """Subcategory by natural key inside a category."""

    @abstractmethod
    def create_subcategory(self, *, category_id: str, name: str, sort_order: int = 0) -> Subcategory:
        """Persist a new subcategory."""

    @abstractmethod
    def find_menu_item(self, item_code: Optional[str], category_id: str) -> Optional[MenuItem]:
        """Menu item by (item code, category id)."""

    @abstractmethod
    def create_menu_item(self, **fields: Any) -> MenuItem:
        """Persist a new menu item."""

    @abstractmethod
    def update_menu_item(self, item: MenuItem, **fields: Any) -> MenuItem:
        """Merge ``fields`` into an existing item and bump its timestamp."""

    @abstractmethod
    def find_modifier_group(self, restaurant_id: str, name: str) -> Optional[ModifierGroup]:
        """Modifier group by natural key inside a restaurant."""

    @abstractmethod
    def create_modifier_group(
        self, *, restaurant_id: str, name: str, min_selection: int = 0, max_selection: int = 1
    ) -> ModifierGroup:
        """Persist a new modifier group."""

    @abstractmethod
    def create_modifier_item(
        self, *, modifier_group_id: str, name: str, price: Decimal = Decimal("0")
    ) -> ModifierItem:
        """Persist a new modifier item."""

    @abstractmethod
    def find_allergen(self, name: str) -> Optional[Allergen]:
        """Allergen by case-insensitive name."""

    @abstractmethod
    def create_allergen(self, *, name: str) -> Allergen:
        """Persist a new allergen."""

    @abstractmethod
    def item_modifier_group_ids(self, item_id: str) -> list[str]:
        """Ordered modifier-group ids linked to an item."""

    @abstractmethod
    def set_item_modifier_groups(self, item_id: str, group_ids: Iterable[str]) -> None:
        """Replace the item's modifier-group links."""

    @abstractmethod
    def item_allergen_ids(self, item_id: str) -> list[str]:
        """Ordered allergen ids linked to an item."""

    @abstractmethod
    def set_item_allergens(self, item_id: str, allergen_ids: Iterable[str]) -> None:
        """Replace the item's allergen links."""


@contextmanager
def _store_operation(action: str, entity_type: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("catalog store failure action=%s entity=%s error=%s", action, entity_type, exc)
        raise CatalogStoreError(action, entity_type, exc) from exc


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value is None or value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


class SqlCatalogStore(CatalogStore):
    """Catalog store backed by a SQLAlchemy session.

    The store only flushes; committing or rolling back is left to the owner of
    the session so a whole import stays one unit of work.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # Restaurants

    def get_restaurant(self, restaurant_id: Optional[str]) -> Optional[Restaurant]:
        if not restaurant_id:
            return None
        with _store_operation("find", "restaurant"):
            return self.db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()

    def find_restaurant_by_name(self, name: Optional[str]) -> Optional[Restaurant]:
        with _store_operation("find", "restaurant"):
            restaurant_id = resolve_natural_key(self.db, "restaurant", None, name)
            return self.get_restaurant(restaurant_id)

    def delete_restaurant(self, restaurant_id: str) -> bool:
        with _store_operation("delete", "restaurant"):
            restaurant = self.get_restaurant(restaurant_id)
            if restaurant is None:
                return False
            category_ids = [
                category_id
                for (category_id,) in self.db.query(MenuCategory.id)
                .filter(MenuCategory.restaurant_id == restaurant_id)
                .all()
            ]
            for category_id in category_ids:
                self.delete_category(category_id)
            group_ids = [
                group_id
                for (group_id,) in self.db.query(ModifierGroup.id)
                .filter(ModifierGroup.restaurant_id == restaurant_id)
                .all()
            ]
            for group_id in group_ids:
                self.delete_modifier_group(group_id)
            self.db.delete(restaurant)
            self.db.flush()
            return True

    # Categories

    def get_category(self, category_id: str) -> Optional[MenuCategory]:
        with _store_operation("find", "category"):
            return self.db.query(MenuCategory).filter(MenuCategory.id == category_id).first()

    def find_category(self, restaurant_id: str, name: str) -> Optional[MenuCategory]:
        with _store_operation("find", "category"):
            category_id = resolve_natural_key(self.db, "category", restaurant_id, name)
            if category_id is None:
                return None
            return self.get_category(category_id)

    def create_category(
        self,
        *,
        restaurant_id: str,
        name: str,
        description: str = "",
        sort_order: int = 0,
        active: bool = True,
    ) -> MenuCategory:
        category = MenuCategory(
            restaurant_id=restaurant_id,
            name=name.strip(),
            description=description,
            sort_order=sort_order,
            active=active,
        )
        with _store_operation("create", "category"):
            self.db.add(category)
            self.db.flush()
        return category

    def count_categories(self, restaurant_id: str) -> int:
        with _store_operation("count", "category"):
            return self.db.query(MenuCategory).filter(MenuCategory.restaurant_id == restaurant_id).count()

    def delete_category(self, category_id: str) -> bool:
        with _store_operation("delete", "category"):
            category = self.get_category(category_id)
            if category is None:
                return False
            item_ids = [
                item_id
                for (item_id,) in self.db.query(MenuItem.id).filter(MenuItem.category_id == category_id).all()
            ]
            self._delete_items(item_ids)
            self.db.query(Subcategory).filter(Subcategory.category_id == category_id).delete(
                synchronize_session=False
            )
            self.db.delete(category)
            self.db.flush()
            return True

    # Subcategories

    def get_subcategory(self, subcategory_id: str) -> Optional[Subcategory]:
        with _store_operation("find", "subcategory"):
            return self.db.query(Subcategory).filter(Subcategory.id == subcategory_id).first()

    def find_subcategory(self, category_id: str, name: str) -> Optional[Subcategory]:
        with _store_operation("find", "subcategory"):
            subcategory_id = resolve_natural_key(self.db, "subcategory", category_id, name)
            if subcategory_id is None:
                return None
            return self.get_subcategory(subcategory_id)

    def create_subcategory(self, *, category_id: str, name: str, sort_order: int = 0) -> Subcategory:
        subcategory = Subcategory(category_id=category_id, name=name.strip(), sort_order=sort_order)
        with _store_operation("create", "subcategory"):
            self.db.add(subcategory)
            self.db.flush()
        return subcategory

    def delete_subcategory(self, subcategory_id: str) -> bool:
        with _store_operation("delete", "subcategory"):
            subcategory = self.get_subcategory(subcategory_id)
            if subcategory is None:
                return False
            item_ids = [
                item_id
                for (item_id,) in self.db.query(MenuItem.id)
                .filter(MenuItem.subcategory_id == subcategory_id)
                .all()
            ]
            self._delete_items(item_ids)
            self.db.delete(subcategory)
            self.db.flush()
            return True

    # Menu items

    def get_menu_item(self, item_id: str) -> Optional[MenuItem]:
        with _store_operation("find", "menu_item"):
            return self.db.query(MenuItem).filter(MenuItem.id == item_id).first()

    def find_menu_item(self, item_code: Optional[str], category_id: str) -> Optional[MenuItem]:
        with _store_operation("find", "menu_item"):
            query = self.db.query(MenuItem).filter(MenuItem.category_id == category_id)
            if item_code is None:
                query = query.filter(MenuItem.item_code.is_(None))
            else:
                query = query.filter(MenuItem.item_code == item_code)
            return query.order_by(MenuItem.created_at.asc(), MenuItem.id.asc()).first()

    def list_menu_items(
        self, *, category_id: Optional[str] = None, subcategory_id: Optional[str] = None
    ) -> list[MenuItem]:
        with _store_operation("list", "menu_item"):
            query = self.db.query(MenuItem)
            if category_id is not None:
                query = query.filter(MenuItem.category_id == category_id)
            if subcategory_id is not None:
                query = query.filter(MenuItem.subcategory_id == subcategory_id)
            return query.order_by(MenuItem.sort_order.asc(), MenuItem.name.asc()).all()

    def create_menu_item(self, **fields: Any) -> MenuItem:
        _reject_unknown_fields(fields)
        item = MenuItem(**fields)
        with _store_operation("create", "menu_item"):
            self.db.add(item)
            self.db.flush()
        return item

    def update_menu_item(self, item: MenuItem, **fields: Any) -> MenuItem:
        _reject_unknown_fields(fields)
        fields.pop("item_code", None)
        for key, value in fields.items():
            setattr(item, key, value)
        item.updated_at = datetime.utcnow()
        with _store_operation("update", "menu_item"):
            self.db.flush()
        return item

    def _delete_items(self, item_ids: list[str]) -> None:
        if not item_ids:
            return
        self.db.query(MenuItemModifierGroup).filter(MenuItemModifierGroup.menu_item_id.in_(item_ids)).delete(
            synchronize_session=False
        )
        self.db.query(MenuItemAllergen).filter(MenuItemAllergen.menu_item_id.in_(item_ids)).delete(
            synchronize_session=False
        )
        self.db.query(MenuItem).filter(MenuItem.id.in_(item_ids)).delete(synchronize_session=False)

    # Modifier groups

    def get_modifier_group(self, group_id: str) -> Optional[ModifierGroup]:
        with _store_operation("find", "modifier_group"):
            return self.db.query(ModifierGroup).filter(ModifierGroup.id == group_id).first()

    def find_modifier_group(self, restaurant_id: str, name: str) -> Optional[ModifierGroup]:
        with _store_operation("find", "modifier_group"):
            group_id = resolve_natural_key(self.db, "modifier_group", restaurant_id, name)
            if group_id is None:
                return None
            return self.get_modifier_group(group_id)

    def create_modifier_group(
        self, *, restaurant_id: str, name: str, min_selection: int = 0, max_selection: int = 1
    ) -> ModifierGroup:
        group = ModifierGroup(
            restaurant_id=restaurant_id,
            name=name.strip(),
            min_selection=min_selection,
            max_selection=max_selection,
        )
        with _store_operation("create", "modifier_group"):
            self.db.add(group)
            self.db.flush()
        return group

    def list_modifier_items(self, group_id: str) -> list[ModifierItem]:
        with _store_operation("list", "modifier_item"):
            return (
                self.db.query(ModifierItem)
                .filter(ModifierItem.modifier_group_id == group_id)
                .order_by(ModifierItem.created_at.asc(), ModifierItem.id.asc())
                .all()
            )

    def create_modifier_item(
        self, *, modifier_group_id: str, name: str, price: Decimal = Decimal("0")
    ) -> ModifierItem:
        modifier_item = ModifierItem(modifier_group_id=modifier_group_id, name=name, price=price)
        with _store_operation("create", "modifier_item"):
            self.db.add(modifier_item)
            self.db.flush()
        return modifier_item

    def delete_modifier_group(self, group_id: str) -> bool:
        with _store_operation("delete", "modifier_group"):
            group = self.get_modifier_group(group_id)
            if group is None:
                return False
            self.db.query(ModifierItem).filter(ModifierItem.modifier_group_id == group_id).delete(
                synchronize_session=False
            )
            self.db.query(MenuItemModifierGroup).filter(
                MenuItemModifierGroup.modifier_group_id == group_id
            ).delete(synchronize_session=False)
            self.db.delete(group)
            self.db.flush()
            return True

    # Allergens

    def find_allergen(self, name: str) -> Optional[Allergen]:
        with _store_operation("find", "allergen"):
            allergen_id = resolve_natural_key(self.db, "allergen", None, name)
            if allergen_id is None:
                return None
            return self.db.query(Allergen).filter(Allergen.id == allergen_id).first()

    def create_allergen(self, *, name: str) -> Allergen:
        allergen = Allergen(name=name.strip())
        with _store_operation("create", "allergen"):
            self.db.add(allergen)
            self.db.flush()
        return allergen

    # Attribute definitions

    def find_attribute(self, name: str) -> Optional[Attribute]:
        with _store_operation("find", "attribute"):
            attribute_id = resolve_natural_key(self.db, "attribute", None, name)
            if attribute_id is None:
                return None
            return self.db.query(Attribute).filter(Attribute.id == attribute_id).first()

    def create_attribute(self, *, name: str, type: str = "TEXT", options: Optional[list[str]] = None) -> Attribute:
        attribute = Attribute(
            name=name.strip(),
            type=type.upper(),
            options_json=json.dumps(options) if options else None,
        )
        with _store_operation("create", "attribute"):
            self.db.add(attribute)
            self.db.flush()
        return attribute

    # Item links

    def item_modifier_group_ids(self, item_id: str) -> list[str]:
        with _store_operation("find", "menu_item_modifier_group"):
            rows = (
                self.db.query(MenuItemModifierGroup.modifier_group_id)
                .filter(MenuItemModifierGroup.menu_item_id == item_id)
                .order_by(MenuItemModifierGroup.position.asc(), MenuItemModifierGroup.id.asc())
                .all()
            )
        return [group_id for (group_id,) in rows]

    def set_item_modifier_groups(self, item_id: str, group_ids: Iterable[str]) -> None:
        with _store_operation("update", "menu_item_modifier_group"):
            self.db.query(MenuItemModifierGroup).filter(MenuItemModifierGroup.menu_item_id == item_id).delete(
                synchronize_session=False
            )
            for position, group_id in enumerate(_dedupe(group_ids)):
                self.db.add(
                    MenuItemModifierGroup(menu_item_id=item_id, modifier_group_id=group_id, position=position)
                )
            self.db.flush()

    def item_allergen_ids(self, item_id: str) -> list[str]:
        with _store_operation("find", "menu_item_allergen"):
            rows = (
                self.db.query(MenuItemAllergen.allergen_id)
                .filter(MenuItemAllergen.menu_item_id == item_id)
                .order_by(MenuItemAllergen.position.asc(), MenuItemAllergen.id.asc())
                .all()
            )
        return [allergen_id for (allergen_id,) in rows]

    def set_item_allergens(self, item_id: str, allergen_ids: Iterable[str]) -> None:
        with _store_operation("update", "menu_item_allergen"):
            self.db.query(MenuItemAllergen).filter(MenuItemAllergen.menu_item_id == item_id).delete(
                synchronize_session=False
            )
            for position, allergen_id in enumerate(_dedupe(allergen_ids)):
                self.db.add(MenuItemAllergen(menu_item_id=item_id, allergen_id=allergen_id, position=position))
            self.db.flush()


def _reject_unknown_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - MENU_ITEM_FIELDS
    if unknown:
        raise ValueError(f"Unknown menu item fields: {sorted(unknown)}")
