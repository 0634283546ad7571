from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Optional

from menuops.catalog.store import CatalogStore
from menuops.schemas.menu_import import CondimentInput
from menuops.services.import_stats import ImportStatistics

logger = logging.getLogger(__name__)


def split_codes(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [code.strip() for code in raw.split(",") if code.strip()]


class CondimentCache:
    """Maps (restaurant id, condiment code) to a modifier group id.

    One instance belongs to exactly one import call; a new import builds a new
    cache, so decisions never leak between runs.
    """

    def __init__(self) -> None:
        self._groups: dict[tuple[str, str], str] = {}

    def get(self, restaurant_id: str, code: str) -> Optional[str]:
        return self._groups.get((restaurant_id, code))

    def put(self, restaurant_id: str, code: str, group_id: str) -> None:
        self._groups[(restaurant_id, code)] = group_id

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._groups

    def __len__(self) -> int:
        return len(self._groups)


class CondimentMapper:
    """Turns condiment codes on an item into modifier group ids for its restaurant."""

    def __init__(
        self,
        store: CatalogStore,
        condiments: Iterable[CondimentInput],
        stats: ImportStatistics,
        *,
        cache: Optional[CondimentCache] = None,
    ) -> None:
        self.store = store
        self.stats = stats
        self.cache = cache if cache is not None else CondimentCache()
        # a repeated code keeps its last definition
        self.definitions: dict[str, CondimentInput] = {
            condiment.condiment_code: condiment for condiment in condiments
        }

    def resolve_codes(self, restaurant_id: str, raw_codes: Optional[str]) -> list[str]:
        group_ids: list[str] = []
        for code in split_codes(raw_codes):
            group_id = self.cache.get(restaurant_id, code)
            if group_id is None:
                group_id = self._resolve_code(restaurant_id, code)
                if group_id is None:
                    continue
                self.cache.put(restaurant_id, code, group_id)
            if group_id not in group_ids:
                group_ids.append(group_id)
        return group_ids

    def _resolve_code(self, restaurant_id: str, code: str) -> Optional[str]:
        condiment = self.definitions.get(code)
        if condiment is None:
            logger.warning("unknown condiment code restaurant_id=%s code=%s", restaurant_id, code)
            return None

        group = self.store.find_modifier_group(restaurant_id, condiment.condiment_name)
        if group is not None:
            logger.debug("condiment %s matched modifier group %s", code, group.id)
            return group.id

        group = self.store.create_modifier_group(
            restaurant_id=restaurant_id,
            name=condiment.condiment_name,
            min_selection=0,
            max_selection=1,
        )
        self.stats.modifier_groups_created += 1
        for entry in condiment.condiment_items:
            self.store.create_modifier_item(
                modifier_group_id=group.id,
                name=entry.condiment_item_name,
                price=Decimal("0"),
            )
            self.stats.modifier_items_created += 1
        logger.debug(
            "condiment %s created modifier group %s with %s items",
            code,
            group.id,
            len(condiment.condiment_items),
        )
        return group.id
