from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text

from menuops.core.database import Base, id_factory


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (Index("ix_menu_items_code_category", "item_code", "category_id"),)

    id = Column(String(64), primary_key=True, default=id_factory("item"))
    tenant_id = Column(String(64), index=True, nullable=True)
    category_id = Column(String(64), ForeignKey("menu_categories.id"), index=True, nullable=False)
    subcategory_id = Column(String(64), ForeignKey("subcategories.id"), index=True, nullable=True)
    item_code = Column(String, index=True, nullable=True)
    name = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    currency = Column(String(8), default="INR", nullable=False)
    image_url = Column(String, nullable=True)
    availability_flag = Column(Boolean, default=True, nullable=False)
    sold_out = Column(Boolean, default=False, nullable=False)
    bogo = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    prep_time = Column(Integer, nullable=True)
    calories = Column(Integer, nullable=True)
    portion = Column(String, nullable=True)
    attributes_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
