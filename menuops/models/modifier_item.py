from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from menuops.core.database import Base, id_factory


class ModifierItem(Base):
    __tablename__ = "modifier_items"

    id = Column(String(64), primary_key=True, default=id_factory("moditem"))
    modifier_group_id = Column(String(64), ForeignKey("modifier_groups.id"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
