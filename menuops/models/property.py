from sqlalchemy import Column, DateTime, String, func

from menuops.core.database import Base, id_factory


class Property(Base):
    __tablename__ = "properties"

    id = Column(String(64), primary_key=True, default=id_factory("prop"))
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    tenant_id = Column(String(64), index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
