from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union, get_origin

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from menuops.core.config import IMPORT_MAX_PAYLOAD_BYTES
from menuops.services.import_errors import ImportPayloadError

SINGLE_PAYLOAD_HINT = "Invalid import payload. Expected { categories: [...] }"
SYSTEM_PAYLOAD_HINT = (
    "Invalid import payload. Expected { restaurantCategory: [...], items: [...], condiments: [...] }"
)


def coerce_price(value: Any) -> Decimal:
    """Numbers and numeric strings become a Decimal; blank or missing is zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float, Decimal)):
        price = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return Decimal("0")
        try:
            price = Decimal(text)
        except InvalidOperation as exc:
            raise ValueError(f"price is not numeric: {value!r}") from exc
    else:
        raise ValueError(f"price is not numeric: {value!r}")
    if not price.is_finite():
        raise ValueError(f"price is not numeric: {value!r}")
    return price


def _code_to_str(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


class _ImportModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def null_list_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # Optional sections may be sent as null; required ones still fail.
        if value is None and info.field_name is not None:
            field = cls.model_fields[info.field_name]
            if not field.is_required() and get_origin(field.annotation) is list:
                return []
        return value


# Single-restaurant document


class ItemInput(_ImportModel):
    item_code: Optional[str] = Field(default=None, alias="itemCode")
    name: str = Field(min_length=1)
    price: Optional[Decimal] = None
    description: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    currency: Optional[str] = None
    availability_flag: Optional[bool] = Field(default=None, alias="availabilityFlag")
    sold_out: Optional[bool] = Field(default=None, alias="soldOut")
    bogo: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    prep_time: Optional[int] = Field(default=None, alias="prepTime")
    calories: Optional[int] = None
    portion: Optional[str] = None

    @field_validator("item_code", mode="before")
    @classmethod
    def normalize_item_code(cls, value: Any) -> Any:
        return _code_to_str(value)

    @field_validator("price", mode="before")
    @classmethod
    def normalize_price(cls, value: Any) -> Any:
        if value is None:
            return None
        return coerce_price(value)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().upper() or None

    def supplied_fields(self) -> dict[str, Any]:
        """Only the fields present in the document, keyed by column name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class SubcategoryInput(_ImportModel):
    name: str = Field(min_length=1)
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    items: list[ItemInput] = Field(default_factory=list)


class CategoryInput(_ImportModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    items: list[ItemInput] = Field(default_factory=list)
    subcategories: list[SubcategoryInput] = Field(default_factory=list)


class MenuImportPayload(_ImportModel):
    categories: list[CategoryInput]


# System-wide document


class CategoryNode(_ImportModel):
    name: str = Field(min_length=1)
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    categories: list[CategoryNode] = Field(default_factory=list)


class RestaurantCategoryInput(_ImportModel):
    restaurant_id: Optional[str] = Field(default=None, alias="restaurantId")
    restaurant_name: Optional[str] = Field(default=None, alias="restaurantName")
    categories: list[CategoryNode] = Field(default_factory=list)

    @field_validator("restaurant_id", mode="before")
    @classmethod
    def normalize_restaurant_id(cls, value: Any) -> Any:
        return _code_to_str(value)


class CondimentItemInput(_ImportModel):
    condiment_item_name: str = Field(alias="condimentItemName", min_length=1)


class CondimentInput(_ImportModel):
    condiment_code: str = Field(alias="condimentCode")
    condiment_name: str = Field(alias="condimentName", min_length=1)
    condiment_items: list[CondimentItemInput] = Field(default_factory=list, alias="condimentItems")

    @field_validator("condiment_code", mode="before")
    @classmethod
    def normalize_condiment_code(cls, value: Any) -> Any:
        return _code_to_str(value)


class SystemItemInput(_ImportModel):
    restaurant_id: Optional[str] = Field(default=None, alias="restaurantId")
    restaurant_name: Optional[str] = Field(default=None, alias="restaurantName")
    category: Optional[str] = None
    item_code: Optional[str] = Field(default=None, alias="itemCode")
    item_name: str = Field(validation_alias=AliasChoices("itemName", "name"), min_length=1)
    item_image: Optional[str] = Field(default=None, alias="itemImage")
    item_price: Decimal = Field(default=Decimal("0"), validation_alias=AliasChoices("itemPrice", "price"))
    item_description: Optional[str] = Field(default=None, alias="itemDescription")
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")
    condiment_codes: Optional[str] = Field(default=None, alias="condimentCodes")
    allergen_list: Optional[str] = Field(default=None, alias="allergenList")
    attributes: Optional[dict[str, Any]] = None
    attribute_list: Optional[Union[str, dict[str, Any]]] = Field(default=None, alias="attributeList")
    calorific_value: Optional[Any] = Field(default=None, alias="calorificValue")
    preparation_time: Optional[Any] = Field(default=None, alias="preparationTime")
    per_serve: Optional[Any] = Field(default=None, alias="perServe")

    @field_validator("restaurant_id", "item_code", mode="before")
    @classmethod
    def normalize_codes(cls, value: Any) -> Any:
        return _code_to_str(value)

    @field_validator("item_price", mode="before")
    @classmethod
    def normalize_price(cls, value: Any) -> Decimal:
        return coerce_price(value)

    @field_validator("condiment_codes", "allergen_list", mode="before")
    @classmethod
    def join_lists(cls, value: Any) -> Any:
        if isinstance(value, list):
            return ",".join(str(entry) for entry in value if entry is not None)
        return value


class SystemMenuImportPayload(_ImportModel):
    restaurant_category: list[RestaurantCategoryInput] = Field(alias="restaurantCategory")
    items: list[SystemItemInput] = Field(default_factory=list)
    condiments: list[CondimentInput] = Field(default_factory=list)


def _load_document(raw: Union[str, bytes, dict[str, Any]]) -> Any:
    if isinstance(raw, dict):
        return raw
    size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
    if size > IMPORT_MAX_PAYLOAD_BYTES:
        raise ImportPayloadError(f"Import document is too large ({size} bytes, limit {IMPORT_MAX_PAYLOAD_BYTES})")
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ImportPayloadError(f"Import document is not valid JSON: {exc}") from exc


def _validate(model: type[BaseModel], document: Any, hint: str) -> Any:
    if not isinstance(document, dict):
        raise ImportPayloadError(hint)
    try:
        return model.model_validate(document)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        raise ImportPayloadError(hint, errors=errors) from exc


def parse_menu_import(raw: Union[str, bytes, dict[str, Any]]) -> MenuImportPayload:
    return _validate(MenuImportPayload, _load_document(raw), SINGLE_PAYLOAD_HINT)


def parse_system_menu_import(raw: Union[str, bytes, dict[str, Any]]) -> SystemMenuImportPayload:
    return _validate(SystemMenuImportPayload, _load_document(raw), SYSTEM_PAYLOAD_HINT)
