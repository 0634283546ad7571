from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from menuops.catalog.store import CatalogStore, SqlCatalogStore
from menuops.models.menu_category import MenuCategory
from menuops.models.restaurant import Restaurant
from menuops.models.subcategory import Subcategory
from menuops.schemas.menu_import import CategoryInput, ItemInput, MenuImportPayload, SubcategoryInput
from menuops.services.audit import (
    ACTION_CREATE,
    ACTION_UPDATE,
    ENTITY_CATEGORY,
    ENTITY_MENU_ITEM,
    ENTITY_SUBCATEGORY,
    SYSTEM_ACTOR,
    Actor,
    log_action,
)
from menuops.services.import_errors import ImportCancelledError, RestaurantNotFoundError
from menuops.services.import_lock import ImportLock, import_lock
from menuops.services.import_stats import ImportStatistics

logger = logging.getLogger(__name__)

DEFAULT_SUBCATEGORY_SORT_ORDER = 10

# Columns that cannot hold NULL; a null in the document leaves the stored value alone.
_REQUIRED_ITEM_FIELDS = {"name", "price", "currency", "availability_flag", "sold_out", "bogo", "sort_order"}

CancelCheck = Optional[Callable[[], bool]]


def raise_if_cancelled(should_cancel: CancelCheck, where: str) -> None:
    if should_cancel is not None and should_cancel():
        logger.warning("import cancelled before %s", where)
        raise ImportCancelledError(f"Import cancelled before {where}")


def import_menu(
    db: Session,
    restaurant_id: str,
    payload: MenuImportPayload,
    *,
    actor: Actor = SYSTEM_ACTOR,
    should_cancel: CancelCheck = None,
    store: Optional[CatalogStore] = None,
    lock: ImportLock = import_lock,
) -> ImportStatistics:
    """Merge one restaurant's category tree into the catalog.

    Nodes are processed depth-first in document order. Items are upserted by
    ``(item_code, category_id)``. Nothing is committed here; the caller owns
    the transaction.
    """
    store = store if store is not None else SqlCatalogStore(db)
    log_extra = {"import_kind": "menu", "restaurant_id": restaurant_id}

    with lock.hold(f"menu:{restaurant_id}"):
        restaurant = store.get_restaurant(restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(restaurant_id)

        stats = ImportStatistics(restaurants_processed=1)
        logger.info(
            "menu import started categories=%s",
            len(payload.categories),
            extra=log_extra,
        )

        for category_input in payload.categories:
            raise_if_cancelled(should_cancel, f"category {category_input.name!r}")
            category = _resolve_category(db, store, restaurant, category_input, stats, actor)
            _import_items(db, store, category_input.items, category, None, stats, actor)

            for subcategory_input in category_input.subcategories:
                subcategory = _resolve_subcategory(db, store, category, subcategory_input, stats, actor)
                _import_items(db, store, subcategory_input.items, category, subcategory, stats, actor)

        logger.info("menu import finished", extra={**log_extra, "stats": stats.to_dict()})
        return stats


def _resolve_category(
    db: Session,
    store: CatalogStore,
    restaurant: Restaurant,
    category_input: CategoryInput,
    stats: ImportStatistics,
    actor: Actor,
) -> MenuCategory:
    category = store.find_category(restaurant.id, category_input.name)
    if category is not None:
        logger.debug("category %r matched %s", category_input.name, category.id)
        return category

    sort_order = category_input.sort_order
    if sort_order is None:
        sort_order = store.count_categories(restaurant.id)
    category = store.create_category(
        restaurant_id=restaurant.id,
        name=category_input.name,
        description=category_input.description or "",
        sort_order=sort_order,
        active=True,
    )
    stats.categories_created += 1
    log_action(
        db,
        actor=actor,
        action=ACTION_CREATE,
        entity_type=ENTITY_CATEGORY,
        entity_name=category.name,
        details=f"Created category for restaurant {restaurant.name}",
    )
    logger.debug("category %r created %s", category_input.name, category.id)
    return category


def _resolve_subcategory(
    db: Session,
    store: CatalogStore,
    category: MenuCategory,
    subcategory_input: SubcategoryInput,
    stats: ImportStatistics,
    actor: Actor,
) -> Subcategory:
    subcategory = store.find_subcategory(category.id, subcategory_input.name)
    if subcategory is not None:
        return subcategory

    sort_order = subcategory_input.sort_order
    if sort_order is None:
        sort_order = DEFAULT_SUBCATEGORY_SORT_ORDER
    subcategory = store.create_subcategory(category_id=category.id, name=subcategory_input.name, sort_order=sort_order)
    stats.subcategories_created += 1
    log_action(
        db,
        actor=actor,
        action=ACTION_CREATE,
        entity_type=ENTITY_SUBCATEGORY,
        entity_name=subcategory.name,
        details=f"Created subcategory in {category.name}",
    )
    logger.debug("subcategory %r created %s", subcategory_input.name, subcategory.id)
    return subcategory


def _item_fields(item_input: ItemInput) -> dict[str, Any]:
    fields = item_input.supplied_fields()
    return {
        key: value
        for key, value in fields.items()
        if not (value is None and key in _REQUIRED_ITEM_FIELDS)
    }


def _import_items(
    db: Session,
    store: CatalogStore,
    items: list[ItemInput],
    category: MenuCategory,
    subcategory: Optional[Subcategory],
    stats: ImportStatistics,
    actor: Actor,
) -> None:
    subcategory_id = subcategory.id if subcategory is not None else None
    for item_input in items:
        fields = _item_fields(item_input)
        fields["category_id"] = category.id
        fields["subcategory_id"] = subcategory_id

        existing = None
        if item_input.item_code is not None:
            existing = store.find_menu_item(item_input.item_code, category.id)

        if existing is not None:
            if existing.subcategory_id != subcategory_id:
                logger.warning(
                    "item %s moved between subcategories %s -> %s",
                    item_input.item_code,
                    existing.subcategory_id,
                    subcategory_id,
                )
            store.update_menu_item(existing, **fields)
            stats.items_updated += 1
            log_action(
                db,
                actor=actor,
                action=ACTION_UPDATE,
                entity_type=ENTITY_MENU_ITEM,
                entity_name=existing.name,
                details=f"Updated item {existing.item_code} in {category.name}",
            )
            continue

        fields.setdefault("price", 0)
        item = store.create_menu_item(**fields)
        stats.items_created += 1
        log_action(
            db,
            actor=actor,
            action=ACTION_CREATE,
            entity_type=ENTITY_MENU_ITEM,
            entity_name=item.name,
            details=f"Created item {item.item_code or item.name} in {category.name}",
        )
