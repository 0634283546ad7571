from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class SkippedRestaurant:
    id: Optional[str]
    name: Optional[str]


@dataclass
class ImportStatistics:
    restaurants_processed: int = 0
    restaurants_skipped: list[SkippedRestaurant] = field(default_factory=list)
    categories_created: int = 0
    subcategories_created: int = 0
    items_created: int = 0
    items_updated: int = 0
    allergens_created: int = 0
    modifier_groups_created: int = 0
    modifier_items_created: int = 0

    def skip_restaurant(self, restaurant_id: Optional[str], name: Optional[str]) -> None:
        self.restaurants_skipped.append(SkippedRestaurant(id=restaurant_id, name=name))

    @property
    def total_created(self) -> int:
        return (
            self.categories_created
            + self.subcategories_created
            + self.items_created
            + self.allergens_created
            + self.modifier_groups_created
            + self.modifier_items_created
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "restaurantsProcessed": self.restaurants_processed,
            "restaurantsSkipped": [
                {"id": skipped.id, "name": skipped.name} for skipped in self.restaurants_skipped
            ],
            "categoriesCreated": self.categories_created,
            "subcategoriesCreated": self.subcategories_created,
            "itemsCreated": self.items_created,
            "itemsUpdated": self.items_updated,
            "allergensCreated": self.allergens_created,
            "modifierGroupsCreated": self.modifier_groups_created,
            "modifierItemsCreated": self.modifier_items_created,
        }
