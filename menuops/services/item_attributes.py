from __future__ import annotations

import json
import math
from typing import Any, Mapping, Optional, Union

NUTRITION_FIELDS = ("protein", "carbs", "fats", "fiber", "sugar", "sodium")
DIETARY_FLAGS = ("glutenFree", "dairyFree")
SOURCING_TYPES = {"Local", "Organic", "Fair Trade", "Imported"}
SENSORY_TYPES = {"hot", "cold", "crispy", "smooth", "spicy"}


def _non_negative_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return number


def _strings(values: Any) -> Optional[list[str]]:
    if not isinstance(values, list):
        return None
    return [value for value in values if isinstance(value, str)]


def validate_attributes(attributes: Any) -> Optional[dict[str, Any]]:
    """Keep the recognised structured attributes, drop everything else.

    Returns ``None`` when nothing survives.
    """
    if not isinstance(attributes, Mapping):
        return None

    validated: dict[str, Any] = {}

    for field in NUTRITION_FIELDS:
        if field in attributes:
            number = _non_negative_number(attributes[field])
            if number is not None:
                validated[field] = number

    for flag in DIETARY_FLAGS:
        if flag in attributes and attributes[flag] is not None:
            validated[flag] = bool(attributes[flag])

    for field in ("ingredients", "sustainability"):
        entries = _strings(attributes.get(field))
        if entries is not None:
            validated[field] = entries

    sourcing = attributes.get("sourcing")
    if isinstance(sourcing, Mapping):
        clean_sourcing: dict[str, str] = {}
        origin = sourcing.get("origin")
        if isinstance(origin, str) and origin:
            clean_sourcing["origin"] = origin
        if sourcing.get("type") in SOURCING_TYPES:
            clean_sourcing["type"] = sourcing["type"]
        if clean_sourcing:
            validated["sourcing"] = clean_sourcing

    recipe = attributes.get("recipe")
    if isinstance(recipe, Mapping):
        clean_recipe: dict[str, Any] = {}
        for field in ("steps", "ingredients"):
            entries = _strings(recipe.get(field))
            if entries is not None:
                clean_recipe[field] = entries
        chef_notes = recipe.get("chefNotes")
        if isinstance(chef_notes, str) and chef_notes:
            clean_recipe["chefNotes"] = chef_notes
        if clean_recipe:
            validated["recipe"] = clean_recipe

    if attributes.get("sensoryType") in SENSORY_TYPES:
        validated["sensoryType"] = attributes["sensoryType"]

    return validated or None


def tag_attributes(attribute_list: str) -> Optional[dict[str, bool]]:
    names = [name.strip() for name in attribute_list.split(",") if name.strip()]
    if not names:
        return None
    return {name: True for name in names}


def normalize_attributes(
    attributes: Optional[Mapping[str, Any]],
    attribute_list: Union[str, Mapping[str, Any], None],
) -> Optional[dict[str, Any]]:
    # Structured attributes win over the legacy tag list.
    if isinstance(attributes, Mapping):
        return validate_attributes(attributes)
    if isinstance(attribute_list, str):
        return tag_attributes(attribute_list)
    if isinstance(attribute_list, Mapping):
        return validate_attributes(attribute_list)
    return None


def dump_attributes(attributes: Optional[dict[str, Any]]) -> Optional[str]:
    if attributes is None:
        return None
    return json.dumps(attributes, sort_keys=True)


def load_attributes(raw: Optional[str]) -> Optional[dict[str, Any]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None
