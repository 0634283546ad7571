from __future__ import annotations

from contextvars import ContextVar


_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_RESTAURANT_ID_CTX: ContextVar[str | None] = ContextVar("restaurant_id", default=None)
_USER_ID_CTX: ContextVar[str | None] = ContextVar("user_id", default=None)
# "menu" or "system" while an import request is being served
_IMPORT_KIND_CTX: ContextVar[str | None] = ContextVar("import_kind", default=None)

IMPORT_PATH_PREFIX = "/api/import/"


def import_kind_for_path(path: str) -> str | None:
    if not path.startswith(IMPORT_PATH_PREFIX):
        return None
    route = path[len(IMPORT_PATH_PREFIX):]
    if route.startswith("system-menu"):
        return "system"
    if route.startswith("menu/"):
        return "menu"
    return None


def set_request_context(
    *,
    request_id: str | None = None,
    restaurant_id: str | None = None,
    user_id: str | None = None,
    import_kind: str | None = None,
) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if restaurant_id is not None:
        _RESTAURANT_ID_CTX.set(restaurant_id)
    if user_id is not None:
        _USER_ID_CTX.set(user_id)
    if import_kind is not None:
        _IMPORT_KIND_CTX.set(import_kind)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_restaurant_id() -> str | None:
    return _RESTAURANT_ID_CTX.get()


def get_user_id() -> str | None:
    return _USER_ID_CTX.get()


def get_import_kind() -> str | None:
    return _IMPORT_KIND_CTX.get()


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _RESTAURANT_ID_CTX.set(None)
    _USER_ID_CTX.set(None)
    _IMPORT_KIND_CTX.set(None)
