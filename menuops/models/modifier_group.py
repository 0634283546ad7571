from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from menuops.core.database import Base, id_factory


class ModifierGroup(Base):
    __tablename__ = "modifier_groups"
    __table_args__ = (Index("ix_modifier_groups_restaurant_name", "restaurant_id", "name"),)

    id = Column(String(64), primary_key=True, default=id_factory("modgrp"))
    restaurant_id = Column(String(64), ForeignKey("restaurants.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    min_selection = Column(Integer, default=0, nullable=False)
    max_selection = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
