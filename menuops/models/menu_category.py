from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from menuops.core.database import Base, id_factory


class MenuCategory(Base):
    __tablename__ = "menu_categories"
    __table_args__ = (Index("ix_menu_categories_restaurant_name", "restaurant_id", "name"),)

    id = Column(String(64), primary_key=True, default=id_factory("cat"))
    restaurant_id = Column(String(64), ForeignKey("restaurants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
