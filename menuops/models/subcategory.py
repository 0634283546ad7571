from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from menuops.core.database import Base, id_factory


class Subcategory(Base):
    __tablename__ = "subcategories"

    id = Column(String(64), primary_key=True, default=id_factory("subcat"))
    category_id = Column(String(64), ForeignKey("menu_categories.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
