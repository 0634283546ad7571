from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from menuops.core.config import SYSTEM_ACTOR_ID, SYSTEM_ACTOR_NAME
from menuops.models.audit_log import AuditLog

ACTION_CREATE = "Create"
ACTION_UPDATE = "Update"
ACTION_DELETE = "Delete"

ENTITY_RESTAURANT = "Restaurant"
ENTITY_CATEGORY = "Category"
ENTITY_SUBCATEGORY = "Subcategory"
ENTITY_MENU_ITEM = "Menu Item"
ENTITY_ALLERGEN = "Allergen"
ENTITY_MODIFIER_GROUP = "Modifier Group"
ENTITY_MODIFIER_ITEM = "Modifier Item"


@dataclass(frozen=True)
class Actor:
    id: str
    name: Optional[str] = None


SYSTEM_ACTOR = Actor(id=SYSTEM_ACTOR_ID, name=SYSTEM_ACTOR_NAME)


def log_action(
    db: Session,
    *,
    actor: Actor,
    action: str,
    entity_type: str,
    entity_name: Optional[str] = None,
    details: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        user_id=actor.id,
        user_name=actor.name,
        action=action,
        entity_type=entity_type,
        entity_name=entity_name,
        details=details,
        meta_json=json.dumps(meta, default=str) if meta else None,
    )
    db.add(entry)
    return entry
