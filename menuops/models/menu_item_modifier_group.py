from sqlalchemy import Column, ForeignKey, Index, Integer, String

from menuops.core.database import Base


class MenuItemModifierGroup(Base):
    __tablename__ = "menu_item_modifier_groups"
    __table_args__ = (
        Index(
            "ix_menu_item_modifier_groups_item_group",
            "menu_item_id",
            "modifier_group_id",
            unique=True,
        ),
    )

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(String(64), ForeignKey("menu_items.id"), nullable=False)
    modifier_group_id = Column(String(64), ForeignKey("modifier_groups.id"), nullable=False)
    position = Column(Integer, default=0, nullable=False)
