from menuops.models.property import Property
from menuops.models.restaurant import Restaurant
from menuops.models.menu_category import MenuCategory
from menuops.models.subcategory import Subcategory
from menuops.models.menu_item import MenuItem
from menuops.models.allergen import Allergen, MenuItemAllergen
from menuops.models.attribute import Attribute
from menuops.models.modifier_group import ModifierGroup
from menuops.models.modifier_item import ModifierItem
from menuops.models.menu_item_modifier_group import MenuItemModifierGroup
from menuops.models.audit_log import AuditLog
