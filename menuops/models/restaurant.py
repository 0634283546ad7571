from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String

from menuops.core.database import Base, id_factory


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(64), primary_key=True, default=id_factory("rest"))
    name = Column(String, nullable=False)
    property_id = Column(String(64), ForeignKey("properties.id"), index=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
