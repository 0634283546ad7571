from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from menuops.core.database import get_db
from menuops.deps import require_admin_user
from menuops.models.audit_log import AuditLog

router = APIRouter(prefix="/api/audit", tags=["audit"])


class AuditLogRead(BaseModel):
    id: int
    user_id: str
    user_name: Optional[str]
    action: str
    entity_type: str
    entity_name: Optional[str]
    details: Optional[str]
    meta: Optional[Dict[str, Any]]
    created_at: datetime


@router.get("", response_model=List[AuditLogRead])
def list_audit_logs(
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    limit: int = Query(200, ge=1, le=500),
    _user: Any = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)

    rows = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

    results: List[Dict[str, Any]] = []
    for entry in rows:
        meta = None
        if entry.meta_json:
            try:
                meta = json.loads(entry.meta_json)
            except json.JSONDecodeError:
                meta = {"raw": entry.meta_json}
        results.append(
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "user_name": entry.user_name,
                "action": entry.action,
                "entity_type": entry.entity_type,
                "entity_name": entry.entity_name,
                "details": entry.details,
                "meta": meta,
                "created_at": entry.created_at,
            }
        )

    return results
