import json
from types import SimpleNamespace

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from menuops.core.database import Base, get_db
from menuops.deps import require_admin_user
from menuops.models.audit_log import AuditLog
from menuops.models.menu_category import MenuCategory
from menuops.models.menu_item import MenuItem
from menuops.models.restaurant import Restaurant
from menuops.routers.audit import router as audit_router
from menuops.routers.menu_import import router as menu_import_router
from menuops.services.import_lock import import_lock
from tests.fixtures_data import HAPPY_PATH_ADMIN, ICED_TEA_SYSTEM_PAYLOAD, SINGLE_RESTAURANT_MENU


def _build_client(*, authenticated: bool = True) -> tuple[TestClient, object]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    db.add(Restaurant(id="rest-1", name="Downtown Diner"))
    db.commit()

    app = FastAPI()
    app.include_router(menu_import_router)
    app.include_router(audit_router)

    app.dependency_overrides[get_db] = lambda: db
    if authenticated:
        app.dependency_overrides[require_admin_user] = lambda: SimpleNamespace(**HAPPY_PATH_ADMIN)

    return TestClient(app), db


def test_system_import_returns_statistics_envelope():
    client, db = _build_client()

    response = client.post("/api/import/system-menu", json=ICED_TEA_SYSTEM_PAYLOAD)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "System menu import completed successfully"
    assert body["data"]["itemsCreated"] == 1
    assert body["data"]["modifierGroupsCreated"] == 1
    assert db.query(MenuItem).count() == 1


def test_single_import_commits_and_reports():
    client, db = _build_client()

    response = client.post("/api/import/menu/rest-1", json=SINGLE_RESTAURANT_MENU)

    assert response.status_code == 200
    assert response.json()["data"]["categoriesCreated"] == 2
    assert db.query(MenuCategory).count() == 2


def test_malformed_document_is_rejected_before_mutation():
    client, db = _build_client()

    response = client.post(
        "/api/import/system-menu",
        content=json.dumps({"items": []}),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["message"].startswith("Invalid import payload")
    assert db.query(AuditLog).count() == 0


def test_invalid_json_is_a_bad_request():
    client, _ = _build_client()

    response = client.post(
        "/api/import/menu/rest-1",
        content=b"{categories:",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400


def test_unknown_restaurant_returns_404():
    client, db = _build_client()

    response = client.post("/api/import/menu/rest-missing", json=SINGLE_RESTAURANT_MENU)

    assert response.status_code == 404
    assert db.query(MenuCategory).count() == 0


def test_busy_import_lock_returns_409():
    client, db = _build_client()

    with import_lock.hold("test"):
        response = client.post("/api/import/system-menu", json=ICED_TEA_SYSTEM_PAYLOAD)

    assert response.status_code == 409
    assert db.query(MenuItem).count() == 0


def test_import_requires_admin():
    client, _ = _build_client(authenticated=False)

    response = client.post("/api/import/system-menu", json=ICED_TEA_SYSTEM_PAYLOAD)

    assert response.status_code == 401


def test_audit_listing_filters_and_orders_newest_first():
    client, _ = _build_client()
    client.post("/api/import/menu/rest-1", json=SINGLE_RESTAURANT_MENU)
    client.post("/api/import/system-menu", json=ICED_TEA_SYSTEM_PAYLOAD)

    everything = client.get("/api/audit")
    categories = client.get("/api/audit", params={"entity_type": "Category"})
    limited = client.get("/api/audit", params={"limit": 1})

    assert everything.status_code == 200
    assert everything.json()[0]["entity_name"] == "System-wide"
    assert everything.json()[0]["meta"]["itemsCreated"] == 1
    assert {entry["user_id"] for entry in everything.json()} == {"7"}
    assert len(categories.json()) == 2
    assert all(entry["entity_type"] == "Category" for entry in categories.json())
    assert len(limited.json()) == 1
