from __future__ import annotations

import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from menuops.core.database import get_db
from menuops.core.request_context import set_request_context
from menuops.deps import actor_from_user, require_admin_user
from menuops.schemas.menu_import import parse_menu_import, parse_system_menu_import
from menuops.services.import_errors import (
    CatalogImportError,
    CatalogStoreError,
    ImportCancelledError,
    ImportInProgressError,
    ImportPayloadError,
    RestaurantNotFoundError,
)
from menuops.services.import_stats import ImportStatistics
from menuops.services.menu_import import import_menu
from menuops.services.system_import import import_system_menu

router = APIRouter(prefix="/api/import", tags=["menu-import"])

logger = logging.getLogger(__name__)


def _run_import(db: Session, run: Callable[[], ImportStatistics]) -> ImportStatistics:
    try:
        stats = run()
        db.commit()
        return stats
    except CatalogImportError as exc:
        db.rollback()
        raise _to_http_error(exc) from exc
    except Exception:
        db.rollback()
        raise


def _to_http_error(exc: CatalogImportError) -> HTTPException:
    if isinstance(exc, ImportPayloadError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "errors": exc.errors},
        )
    if isinstance(exc, RestaurantNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (ImportInProgressError, ImportCancelledError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, CatalogStoreError):
        logger.error("import aborted by store failure: %s", exc)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during import",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _envelope(stats: ImportStatistics, message: str) -> dict[str, Any]:
    return {"success": True, "data": stats.to_dict(), "message": message}


@router.post("/menu/{restaurant_id}")
async def import_restaurant_menu(
    restaurant_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: Any = Depends(require_admin_user),
):
    set_request_context(restaurant_id=restaurant_id)
    raw = await request.body()
    try:
        payload = parse_menu_import(raw)
    except ImportPayloadError as exc:
        raise _to_http_error(exc) from exc

    stats = _run_import(
        db,
        lambda: import_menu(db, restaurant_id, payload, actor=actor_from_user(user)),
    )
    return _envelope(stats, "Menu import completed successfully")


@router.post("/system-menu")
async def import_system_wide_menu(
    request: Request,
    db: Session = Depends(get_db),
    user: Any = Depends(require_admin_user),
):
    raw = await request.body()
    try:
        payload = parse_system_menu_import(raw)
    except ImportPayloadError as exc:
        raise _to_http_error(exc) from exc

    stats = _run_import(
        db,
        lambda: import_system_menu(db, payload, actor=actor_from_user(user)),
    )
    return _envelope(stats, "System menu import completed successfully")
