from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from menuops.core.database import Base, id_factory


class Attribute(Base):
    __tablename__ = "attributes"

    id = Column(String(64), primary_key=True, default=id_factory("attr"))
    name = Column(String, nullable=False, index=True)
    # TEXT | NUMBER | BOOLEAN | SELECT
    type = Column(String(16), default="TEXT", nullable=False)
    options_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
