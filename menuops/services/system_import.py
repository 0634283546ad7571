from __future__ import annotations

import logging
import math
from typing import Any, Optional

from sqlalchemy.orm import Session

from menuops.catalog.store import CatalogStore, SqlCatalogStore
from menuops.core.config import DEFAULT_CURRENCY
from menuops.models.menu_category import MenuCategory
from menuops.models.restaurant import Restaurant
from menuops.schemas.menu_import import CategoryNode, SystemItemInput, SystemMenuImportPayload
from menuops.services.audit import ACTION_CREATE, ENTITY_MENU_ITEM, SYSTEM_ACTOR, Actor, log_action
from menuops.services.condiment_mapper import CondimentCache, CondimentMapper, split_codes
from menuops.services.import_lock import ImportLock, import_lock
from menuops.services.import_stats import ImportStatistics
from menuops.services.item_attributes import dump_attributes, normalize_attributes
from menuops.services.menu_import import CancelCheck, raise_if_cancelled

logger = logging.getLogger(__name__)

_LOG_EXTRA = {"import_kind": "system"}


def import_system_menu(
    db: Session,
    payload: SystemMenuImportPayload,
    *,
    actor: Actor = SYSTEM_ACTOR,
    should_cancel: CancelCheck = None,
    store: Optional[CatalogStore] = None,
    lock: ImportLock = import_lock,
) -> ImportStatistics:
    """Merge a multi-restaurant document into the catalog.

    The category pass runs to completion before the item pass so items can
    reference categories created by the same document. One audit entry
    summarises the run.
    """
    store = store if store is not None else SqlCatalogStore(db)

    with lock.hold("system"):
        stats = ImportStatistics()
        logger.info(
            "system import started restaurants=%s items=%s condiments=%s",
            len(payload.restaurant_category),
            len(payload.items),
            len(payload.condiments),
            extra=_LOG_EXTRA,
        )

        for entry in payload.restaurant_category:
            raise_if_cancelled(should_cancel, f"restaurant {entry.restaurant_name or entry.restaurant_id!r}")
            restaurant = _resolve_restaurant(store, entry.restaurant_id, entry.restaurant_name)
            if restaurant is None:
                logger.warning(
                    "restaurant skipped id=%s name=%s",
                    entry.restaurant_id,
                    entry.restaurant_name,
                    extra=_LOG_EXTRA,
                )
                stats.skip_restaurant(entry.restaurant_id, entry.restaurant_name)
                continue
            stats.restaurants_processed += 1
            _import_category_tree(store, restaurant, entry.categories, stats)

        mapper = CondimentMapper(store, payload.condiments, stats, cache=CondimentCache())
        for item_input in payload.items:
            raise_if_cancelled(should_cancel, f"item {item_input.item_code or item_input.item_name!r}")
            _import_item(store, mapper, item_input, stats)

        log_action(
            db,
            actor=actor,
            action=ACTION_CREATE,
            entity_type=ENTITY_MENU_ITEM,
            entity_name="System-wide",
            details=f"Imported menu affecting {stats.restaurants_processed} restaurants.",
            meta=stats.to_dict(),
        )
        logger.info("system import finished", extra={**_LOG_EXTRA, "stats": stats.to_dict()})
        return stats


def _resolve_restaurant(
    store: CatalogStore, restaurant_id: Optional[str], restaurant_name: Optional[str]
) -> Optional[Restaurant]:
    restaurant = store.get_restaurant(restaurant_id)
    if restaurant is None:
        restaurant = store.find_restaurant_by_name(restaurant_name)
    return restaurant


def _import_category_tree(
    store: CatalogStore,
    restaurant: Restaurant,
    nodes: list[CategoryNode],
    stats: ImportStatistics,
) -> None:
    for node in nodes:
        category = store.find_category(restaurant.id, node.name)
        if category is None:
            category = store.create_category(
                restaurant_id=restaurant.id,
                name=node.name,
                description="",
                sort_order=node.sort_order or 0,
                active=True,
            )
            stats.categories_created += 1
            logger.debug("category %r created %s", node.name, category.id)
        _import_subcategory_tree(store, category, node.categories, stats)


def _import_subcategory_tree(
    store: CatalogStore,
    category: MenuCategory,
    nodes: list[CategoryNode],
    stats: ImportStatistics,
) -> None:
    # Subcategories are one level deep; deeper nodes attach to the same category.
    for node in nodes:
        subcategory = store.find_subcategory(category.id, node.name)
        if subcategory is None:
            subcategory = store.create_subcategory(
                category_id=category.id,
                name=node.name,
                sort_order=node.sort_order or 0,
            )
            stats.subcategories_created += 1
            logger.debug("subcategory %r created %s", node.name, subcategory.id)
        if node.categories:
            _import_subcategory_tree(store, category, node.categories, stats)


def _parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def _item_fields(item_input: SystemItemInput, category: MenuCategory) -> dict[str, Any]:
    attributes = normalize_attributes(item_input.attributes, item_input.attribute_list)
    fields: dict[str, Any] = {
        "name": item_input.item_name,
        "item_code": item_input.item_code,
        "image_url": item_input.item_image or None,
        "price": item_input.item_price,
        "category_id": category.id,
        "description": item_input.item_description or "",
        "sort_order": item_input.sort_order or 0,
        "availability_flag": True,
        "sold_out": False,
        "bogo": False,
        "currency": DEFAULT_CURRENCY,
        "attributes_json": dump_attributes(attributes),
    }
    calories = _parse_int(item_input.calorific_value)
    if calories is not None:
        fields["calories"] = calories
    prep_time = _parse_int(item_input.preparation_time)
    if prep_time is not None:
        fields["prep_time"] = prep_time
    if item_input.per_serve not in (None, ""):
        fields["portion"] = str(item_input.per_serve)
    return fields


def _resolve_allergens(store: CatalogStore, raw_names: Optional[str], stats: ImportStatistics) -> list[str]:
    allergen_ids: list[str] = []
    for name in split_codes(raw_names):
        allergen = store.find_allergen(name)
        if allergen is None:
            allergen = store.create_allergen(name=name)
            stats.allergens_created += 1
            logger.debug("allergen %r created %s", name, allergen.id)
        if allergen.id not in allergen_ids:
            allergen_ids.append(allergen.id)
    return allergen_ids


def _import_item(
    store: CatalogStore,
    mapper: CondimentMapper,
    item_input: SystemItemInput,
    stats: ImportStatistics,
) -> None:
    restaurant = _resolve_restaurant(store, item_input.restaurant_id, item_input.restaurant_name)
    if restaurant is None:
        logger.warning(
            "item %s skipped, restaurant not found id=%s name=%s",
            item_input.item_code,
            item_input.restaurant_id,
            item_input.restaurant_name,
            extra=_LOG_EXTRA,
        )
        return

    category = store.find_category(restaurant.id, item_input.category) if item_input.category else None
    if category is None:
        logger.warning(
            "item %s skipped, category %r not found in restaurant %s",
            item_input.item_code,
            item_input.category,
            restaurant.id,
            extra=_LOG_EXTRA,
        )
        return

    group_ids = mapper.resolve_codes(restaurant.id, item_input.condiment_codes)
    allergen_ids = _resolve_allergens(store, item_input.allergen_list, stats)
    fields = _item_fields(item_input, category)

    existing = None
    if item_input.item_code is not None:
        existing = store.find_menu_item(item_input.item_code, category.id)

    if existing is not None:
        item = store.update_menu_item(existing, **fields)
        stats.items_updated += 1
        if group_ids:
            store.set_item_modifier_groups(item.id, group_ids)
    else:
        item = store.create_menu_item(**fields)
        stats.items_created += 1
        if group_ids:
            store.set_item_modifier_groups(item.id, group_ids)
    store.set_item_allergens(item.id, allergen_ids)
