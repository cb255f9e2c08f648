from conftest import auth
from schemas import DEFAULT_SETTINGS
from site_settings import ensure_initialized


def test_startup_creates_single_default_document(client, store, make_user):
    assert store["setting"].count_documents({}) == 1
    resp = client.get("/api/settings", headers=auth(make_user("student")))
    assert resp.status_code == 200
    assert resp.json()["schoolName"] == DEFAULT_SETTINGS["schoolName"]
    assert resp.json()["updatedBy"] is None


def test_ensure_initialized_is_idempotent(store):
    assert ensure_initialized(store) is True
    store["setting"].update_one({}, {"$set": {"schoolName": "Custom"}})
    assert ensure_initialized(store) is False
    assert store["setting"].count_documents({}) == 1
    assert store["setting"].find_one()["schoolName"] == "Custom"


def test_get_settings_requires_token(client):
    assert client.get("/api/settings").status_code == 401


def test_get_settings_not_found_when_missing(client, store, make_user):
    store["setting"].delete_many({})
    resp = client.get("/api/settings", headers=auth(make_user("teacher")))
    assert resp.status_code == 404
    assert resp.json() == {"error": "Settings not found"}


def test_admin_updates_settings(client, store, make_user):
    admin = make_user("admin")
    resp = client.put("/api/settings", headers=auth(admin), json={"schoolName": "New Name", "phone": "123"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["schoolName"] == "New Name"
    assert data["phone"] == "123"
    assert data["website"] == DEFAULT_SETTINGS["website"]
    assert data["updatedBy"] == admin["id"]
    assert store["setting"].count_documents({}) == 1


def test_update_upserts_when_missing(client, store, make_user):
    store["setting"].delete_many({})
    admin = make_user("admin")
    resp = client.put("/api/settings", headers=auth(admin), json={"email": "office@x.edu"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "office@x.edu"
    assert resp.json()["schoolName"] == DEFAULT_SETTINGS["schoolName"]
    assert store["setting"].count_documents({}) == 1


def test_non_admin_cannot_update_settings(client, make_user):
    resp = client.put("/api/settings", headers=auth(make_user("teacher")), json={"schoolName": "x"})
    assert resp.status_code == 403
