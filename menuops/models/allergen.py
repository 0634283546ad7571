from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from menuops.core.database import Base, id_factory


class Allergen(Base):
    __tablename__ = "allergens"

    id = Column(String(64), primary_key=True, default=id_factory("allergen"))
    name = Column(String, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class MenuItemAllergen(Base):
    __tablename__ = "menu_item_allergens"
    __table_args__ = (
        Index("ix_menu_item_allergens_item_allergen", "menu_item_id", "allergen_id", unique=True),
    )

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(String(64), ForeignKey("menu_items.id"), nullable=False)
    allergen_id = Column(String(64), ForeignKey("allergens.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
