from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from menuops.catalog.store import SqlCatalogStore
from menuops.core.database import Base
from menuops.models.modifier_group import ModifierGroup
from menuops.models.modifier_item import ModifierItem
from menuops.models.restaurant import Restaurant
from menuops.schemas.menu_import import CondimentInput
from menuops.services.condiment_mapper import CondimentCache, CondimentMapper, split_codes
from menuops.services.import_stats import ImportStatistics
from tests.fixtures_data import SPICE_LEVEL_CONDIMENT


class CountingStore(SqlCatalogStore):
    def __init__(self, db) -> None:
        super().__init__(db)
        self.group_lookups = 0

    def find_modifier_group(self, restaurant_id, name):
        self.group_lookups += 1
        return super().find_modifier_group(restaurant_id, name)


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


def _mapper(db, *, store=None, cache=None):
    stats = ImportStatistics()
    condiments = [CondimentInput.model_validate(SPICE_LEVEL_CONDIMENT)]
    mapper = CondimentMapper(store or SqlCatalogStore(db), condiments, stats, cache=cache)
    return mapper, stats


def test_split_codes_drops_blank_entries():
    assert split_codes(" C1, ,C2,, C3 ") == ["C1", "C2", "C3"]
    assert split_codes("") == []
    assert split_codes(None) == []


def test_shared_code_creates_one_group_for_many_items():
    db = _build_session()
    mapper, stats = _mapper(db)

    resolved = [mapper.resolve_codes("rest-1", "C1") for _ in range(5)]

    assert len({tuple(group_ids) for group_ids in resolved}) == 1
    assert len(resolved[0]) == 1
    assert stats.modifier_groups_created == 1
    assert stats.modifier_items_created == 2
    assert db.query(ModifierGroup).count() == 1
    group = db.query(ModifierGroup).one()
    assert group.name == "Spice Level"
    assert group.min_selection == 0
    assert group.max_selection == 1
    assert sorted(item.name for item in db.query(ModifierItem).all()) == ["Hot", "Mild"]
    assert all(item.price == 0 for item in db.query(ModifierItem).all())


def test_cache_hit_skips_group_lookup():
    db = _build_session()
    store = CountingStore(db)
    mapper, _ = _mapper(db, store=store)

    mapper.resolve_codes("rest-1", "C1")
    mapper.resolve_codes("rest-1", "C1")
    mapper.resolve_codes("rest-1", "C1, C1")

    assert store.group_lookups == 1


def test_duplicate_codes_on_one_item_resolve_once():
    db = _build_session()
    mapper, _ = _mapper(db)

    group_ids = mapper.resolve_codes("rest-1", "C1,C1, C1")

    assert len(group_ids) == 1


def test_unknown_codes_are_dropped_silently():
    db = _build_session()
    mapper, stats = _mapper(db)

    group_ids = mapper.resolve_codes("rest-1", "ZZ, C1, ,NOPE")

    assert len(group_ids) == 1
    assert stats.modifier_groups_created == 1
    assert mapper.resolve_codes("rest-1", "ZZ") == []


def test_existing_group_is_reused_by_case_insensitive_name():
    db = _build_session()
    db.add(ModifierGroup(id="modgrp-existing", restaurant_id="rest-1", name="spice level"))
    db.commit()
    mapper, stats = _mapper(db)

    assert mapper.resolve_codes("rest-1", "C1") == ["modgrp-existing"]
    assert stats.modifier_groups_created == 0
    assert stats.modifier_items_created == 0
    assert db.query(ModifierItem).count() == 0


def test_cache_is_keyed_per_restaurant():
    db = _build_session()
    mapper, stats = _mapper(db)

    first = mapper.resolve_codes("rest-1", "C1")
    second = mapper.resolve_codes("rest-2", "C1")

    assert first != second
    assert stats.modifier_groups_created == 2
    assert len(mapper.cache) == 2
    assert ("rest-1", "C1") in mapper.cache


def test_cached_group_id_is_trusted_without_resolution():
    db = _build_session()
    cache = CondimentCache()
    cache.put("rest-1", "C1", "modgrp-cached")
    mapper, stats = _mapper(db, cache=cache)

    assert mapper.resolve_codes("rest-1", "C1") == ["modgrp-cached"]
    assert stats.modifier_groups_created == 0


def test_fresh_mapper_starts_with_empty_cache():
    db = _build_session()
    first, _ = _mapper(db)
    first.resolve_codes("rest-1", "C1")

    second, stats = _mapper(db)

    assert len(second.cache) == 0
    second.resolve_codes("rest-1", "C1")
    assert stats.modifier_groups_created == 0
    assert db.query(ModifierGroup).count() == 1


def test_group_order_follows_code_order():
    db = _build_session()
    condiments = [
        CondimentInput.model_validate(SPICE_LEVEL_CONDIMENT),
        CondimentInput.model_validate(
            {"condimentCode": "SW", "condimentName": "Sweetener", "condimentItems": []}
        ),
    ]
    mapper = CondimentMapper(SqlCatalogStore(db), condiments, ImportStatistics())

    forward = mapper.resolve_codes("rest-1", "SW,C1")
    backward = mapper.resolve_codes("rest-1", "C1,SW")

    assert forward == list(reversed(backward))
