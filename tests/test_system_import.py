import copy
import json
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from menuops.catalog.store import SqlCatalogStore, _store_operation
from menuops.core.database import Base
from menuops.models.allergen import Allergen
from menuops.models.audit_log import AuditLog
from menuops.models.menu_category import MenuCategory
from menuops.models.menu_item import MenuItem
from menuops.models.menu_item_modifier_group import MenuItemModifierGroup
from menuops.models.modifier_group import ModifierGroup
from menuops.models.modifier_item import ModifierItem
from menuops.models.restaurant import Restaurant
from menuops.models.subcategory import Subcategory
from menuops.schemas.menu_import import parse_system_menu_import
from menuops.services.import_errors import CatalogStoreError, ImportCancelledError
from menuops.services.import_lock import ImportLock
from menuops.services.system_import import import_system_menu
from tests.fixtures_data import ICED_TEA_SYSTEM_PAYLOAD, SPICE_LEVEL_CONDIMENT


class FailingItemStore(SqlCatalogStore):
    def create_menu_item(self, **fields):
        with _store_operation("create", "menu_item"):
            raise OperationalError("INSERT INTO menu_items", {}, Exception("database is unavailable"))


def _build_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    db.add(Restaurant(id="rest-1", name="Downtown Diner"))
    db.add(Restaurant(id="rest-2", name="Harbour Grill"))
    db.commit()
    return db


def _run(db, document, **kwargs):
    kwargs.setdefault("lock", ImportLock())
    stats = import_system_menu(db, parse_system_menu_import(document), **kwargs)
    db.commit()
    return stats


def _item(code, category, name=None, restaurant_id="rest-1", **extra):
    item = {
        "restaurantId": restaurant_id,
        "restaurantName": "",
        "category": category,
        "itemCode": code,
        "itemName": name or code,
        "itemPrice": "10",
    }
    item.update(extra)
    return item


def _catalog_snapshot(db):
    return {
        "categories": sorted((c.restaurant_id, c.name) for c in db.query(MenuCategory).all()),
        "subcategories": sorted(s.name for s in db.query(Subcategory).all()),
        "items": sorted(
            (i.item_code, i.category_id, i.name, str(i.price), i.attributes_json)
            for i in db.query(MenuItem).all()
        ),
        "groups": sorted((g.restaurant_id, g.name) for g in db.query(ModifierGroup).all()),
        "modifier_items": sorted(m.name for m in db.query(ModifierItem).all()),
        "links": sorted(
            (link.menu_item_id, link.modifier_group_id) for link in db.query(MenuItemModifierGroup).all()
        ),
    }


def test_iced_tea_end_to_end():
    db = _build_session()

    stats = _run(db, ICED_TEA_SYSTEM_PAYLOAD)

    result = stats.to_dict()
    assert result["categoriesCreated"] == 1
    assert result["modifierGroupsCreated"] == 1
    assert result["modifierItemsCreated"] == 2
    assert result["itemsCreated"] == 1
    assert result["itemsUpdated"] == 0
    assert result["restaurantsProcessed"] == 1
    assert result["restaurantsSkipped"] == []

    item = db.query(MenuItem).one()
    assert item.name == "Iced Tea"
    assert item.item_code == "BEV-1"
    assert item.price == Decimal("3.50")
    assert item.currency == "INR"
    assert item.availability_flag is True
    assert item.sold_out is False
    assert item.bogo is False

    group_ids = SqlCatalogStore(db).item_modifier_group_ids(item.id)
    assert len(group_ids) == 1
    group = db.query(ModifierGroup).filter(ModifierGroup.id == group_ids[0]).one()
    assert group.name == "Sweetener"
    assert group.restaurant_id == "rest-1"
    names = sorted(m.name for m in db.query(ModifierItem).filter(ModifierItem.modifier_group_id == group.id))
    assert names == ["Stevia", "Sugar"]


def test_second_identical_run_only_updates():
    db = _build_session()
    document = copy.deepcopy(ICED_TEA_SYSTEM_PAYLOAD)
    document["items"].append(_item("BEV-2", "beverages", "Lemonade", condimentCodes="SW"))

    _run(db, document)
    first = _catalog_snapshot(db)
    stats = _run(db, document)

    assert _catalog_snapshot(db) == first
    assert stats.total_created == 0
    assert stats.items_updated == 2


def test_non_ascii_names_are_reused_on_reimport():
    db = _build_session()
    document = {
        "restaurantCategory": [
            {"restaurantId": "rest-1", "restaurantName": "Downtown Diner", "categories": [{"name": "Été Specials"}]}
        ],
        "items": [_item("ETE-1", "Été Specials", "Crêpe", condimentCodes="CS")],
        "condiments": [
            {"condimentCode": "CS", "condimentName": "Crème Sauces", "condimentItems": [{"condimentItemName": "Crème Fraîche"}]}
        ],
    }

    first = _run(db, document)
    second = _run(db, document)

    assert first.categories_created == 1
    assert first.items_created == 1
    assert first.modifier_groups_created == 1
    assert second.total_created == 0
    assert second.items_updated == 1
    assert [c.name for c in db.query(MenuCategory).all()] == ["Été Specials"]
    assert [g.name for g in db.query(ModifierGroup).all()] == ["Crème Sauces"]
    item = db.query(MenuItem).one()
    assert len(SqlCatalogStore(db).item_modifier_group_ids(item.id)) == 1


def test_five_items_share_one_condiment_group():
    db = _build_session()
    document = {
        "restaurantCategory": [{"restaurantId": "rest-1", "restaurantName": "", "categories": [{"name": "Curries"}]}],
        "items": [_item(f"CU-{n}", "Curries", condimentCodes="C1") for n in range(5)],
        "condiments": [SPICE_LEVEL_CONDIMENT],
    }

    stats = _run(db, document)

    assert stats.modifier_groups_created == 1
    assert stats.modifier_items_created == 2
    assert db.query(ModifierGroup).count() == 1
    assert db.query(ModifierItem).count() == 2
    group = db.query(ModifierGroup).one()
    links = db.query(MenuItemModifierGroup).all()
    assert len(links) == 5
    assert {link.modifier_group_id for link in links} == {group.id}


def test_categories_match_case_insensitively():
    db = _build_session()
    db.add(MenuCategory(id="cat-existing", restaurant_id="rest-1", name="appetizers"))
    db.commit()
    document = {
        "restaurantCategory": [
            {"restaurantId": "rest-1", "restaurantName": "", "categories": [{"name": "Appetizers"}]}
        ],
        "items": [_item("AP-1", "APPETIZERS")],
        "condiments": [],
    }

    stats = _run(db, document)

    assert stats.categories_created == 0
    assert db.query(MenuCategory).count() == 1
    assert db.query(MenuItem).one().category_id == "cat-existing"


def test_unresolvable_restaurant_is_skipped():
    db = _build_session()
    document = {
        "restaurantCategory": [
            {"restaurantId": "rest-404", "restaurantName": "Ghost Kitchen", "categories": [{"name": "Soups"}]},
            {"restaurantId": "rest-1", "restaurantName": "", "categories": [{"name": "Salads"}]},
        ],
        "items": [
            _item("SO-1", "Soups", restaurant_id="rest-404"),
            _item("SA-1", "Salads"),
        ],
        "condiments": [],
    }

    stats = _run(db, document)

    assert stats.to_dict()["restaurantsSkipped"] == [{"id": "rest-404", "name": "Ghost Kitchen"}]
    assert stats.restaurants_processed == 1
    assert stats.categories_created == 1
    assert stats.items_created == 1
    assert db.query(MenuCategory).filter(MenuCategory.name == "Soups").count() == 0


def test_restaurant_falls_back_to_name():
    db = _build_session()
    document = {
        "restaurantCategory": [
            {"restaurantId": "rest-unknown", "restaurantName": "harbour GRILL", "categories": [{"name": "Fish"}]}
        ],
        "items": [
            {
                "restaurantName": "Harbour Grill",
                "category": "fish",
                "itemCode": "F-1",
                "itemName": "Fish Fry",
                "itemPrice": 9,
            }
        ],
        "condiments": [],
    }

    stats = _run(db, document)

    assert stats.restaurants_processed == 1
    assert db.query(MenuCategory).one().restaurant_id == "rest-2"
    assert stats.items_created == 1


def test_item_with_unknown_category_is_skipped_silently():
    db = _build_session()
    document = {
        "restaurantCategory": [],
        "items": [_item("X-1", "Nowhere"), _item("X-2", None)],
        "condiments": [],
    }

    stats = _run(db, document)

    assert stats.total_created == 0
    assert stats.restaurants_skipped == []
    assert db.query(MenuItem).count() == 0


def test_upsert_key_is_item_code_and_category():
    db = _build_session()
    document = {
        "restaurantCategory": [
            {"restaurantId": "rest-1", "restaurantName": "", "categories": [{"name": "Lunch"}, {"name": "Dinner"}]}
        ],
        "items": [
            _item("TH-1", "Lunch", "Thali"),
            _item("TH-1", "Dinner", "Thali"),
            _item("TH-1", "Dinner", "Deluxe Thali"),
        ],
        "condiments": [],
    }

    stats = _run(db, document)

    assert stats.items_created == 2
    assert stats.items_updated == 1
    assert sorted(item.name for item in db.query(MenuItem).all()) == ["Deluxe Thali", "Thali"]


def test_nested_nodes_become_subcategories():
    db = _build_session()
    document = {
        "restaurantCategory": [
            {
                "restaurantId": "rest-1",
                "restaurantName": "",
                "categories": [
                    {
                        "name": "Drinks",
                        "categories": [
                            {"name": "Hot", "sortOrder": 2, "categories": [{"name": "Herbal"}]},
                            {"name": "Cold"},
                        ],
                    }
                ],
            }
        ],
        "items": [],
        "condiments": [],
    }

    stats = _run(db, document)

    drinks = db.query(MenuCategory).one()
    subcategories = {s.name: s for s in db.query(Subcategory).all()}
    assert stats.categories_created == 1
    assert stats.subcategories_created == 3
    assert set(subcategories) == {"Hot", "Herbal", "Cold"}
    assert {s.category_id for s in subcategories.values()} == {drinks.id}
    assert subcategories["Hot"].sort_order == 2

    stats = _run(db, document)
    assert stats.subcategories_created == 0


def test_allergens_are_resolved_and_created_globally():
    db = _build_session()
    db.add(Allergen(id="allergen-nuts", name="Nuts"))
    db.commit()
    document = {
        "restaurantCategory": [{"restaurantId": "rest-1", "restaurantName": "", "categories": [{"name": "Sweets"}]}],
        "items": [_item("SW-1", "Sweets", allergenList="nuts, Dairy, dairy")],
        "condiments": [],
    }

    stats = _run(db, document)

    store = SqlCatalogStore(db)
    item = db.query(MenuItem).one()
    allergen_ids = store.item_allergen_ids(item.id)
    assert stats.allergens_created == 1
    assert allergen_ids[0] == "allergen-nuts"
    assert len(allergen_ids) == 2

    document["items"][0].pop("allergenList")
    _run(db, document)
    assert store.item_allergen_ids(item.id) == []


def test_attributes_are_normalised():
    db = _build_session()
    document = {
        "restaurantCategory": [{"restaurantId": "rest-1", "restaurantName": "", "categories": [{"name": "Bowls"}]}],
        "items": [
            _item("B-1", "Bowls", attributeList="Vegan, Spicy,"),
            _item(
                "B-2",
                "Bowls",
                attributes={"protein": "12", "sugar": -1, "sensoryType": "spicy", "unknown": 1},
                calorificValue="450",
                preparationTime="10-15 minutes",
                perServe="1 bowl",
            ),
        ],
        "condiments": [],
    }

    _run(db, document)

    tagged = db.query(MenuItem).filter(MenuItem.item_code == "B-1").one()
    structured = db.query(MenuItem).filter(MenuItem.item_code == "B-2").one()
    assert json.loads(tagged.attributes_json) == {"Vegan": True, "Spicy": True}
    assert json.loads(structured.attributes_json) == {"protein": 12.0, "sensoryType": "spicy"}
    assert structured.calories == 450
    assert structured.prep_time is None
    assert structured.portion == "1 bowl"


def test_reimport_without_codes_keeps_modifier_links():
    db = _build_session()
    _run(db, ICED_TEA_SYSTEM_PAYLOAD)
    item = db.query(MenuItem).one()
    links_before = SqlCatalogStore(db).item_modifier_group_ids(item.id)

    document = copy.deepcopy(ICED_TEA_SYSTEM_PAYLOAD)
    document["items"][0].pop("condimentCodes")
    stats = _run(db, document)

    assert stats.items_updated == 1
    assert SqlCatalogStore(db).item_modifier_group_ids(item.id) == links_before


def test_one_summary_audit_entry_per_run():
    db = _build_session()

    _run(db, ICED_TEA_SYSTEM_PAYLOAD)

    entry = db.query(AuditLog).one()
    assert entry.action == "Create"
    assert entry.entity_type == "Menu Item"
    assert entry.entity_name == "System-wide"
    assert entry.details == "Imported menu affecting 1 restaurants."
    assert json.loads(entry.meta_json)["itemsCreated"] == 1


def test_store_failure_propagates_and_stops_processing():
    db = _build_session()
    document = copy.deepcopy(ICED_TEA_SYSTEM_PAYLOAD)
    document["items"].append(_item("BEV-2", "Beverages", "Lemonade"))

    with pytest.raises(CatalogStoreError) as exc_info:
        import_system_menu(
            db,
            parse_system_menu_import(document),
            store=FailingItemStore(db),
            lock=ImportLock(),
        )

    db.rollback()
    assert exc_info.value.entity_type == "menu_item"
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert db.query(MenuCategory).count() == 0
    assert db.query(AuditLog).count() == 0


def test_cancellation_between_items():
    db = _build_session()
    document = copy.deepcopy(ICED_TEA_SYSTEM_PAYLOAD)
    document["items"].append(_item("BEV-2", "Beverages", "Lemonade"))
    checks = []

    def should_cancel():
        checks.append(1)
        return len(checks) > 2

    with pytest.raises(ImportCancelledError):
        _run(db, document, should_cancel=should_cancel)

    assert db.query(MenuItem).filter(MenuItem.item_code == "BEV-2").count() == 0
