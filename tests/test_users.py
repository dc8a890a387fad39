import pytest

from pricecompare.extensions import db
from pricecompare.models import AuditLog, Comparison, User


def _new_user(**overrides):
    payload = {"username": "newbie", "password": "longenough", "role": "maker", "name": "New Bie"}
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------
# list / get
# ---------------------------------------------------------------------

def test_admin_lists_everyone(client, admin, checker, maker, auth_header):
    response = client.get("/users", headers=auth_header(admin))
    assert response.status_code == 200
    assert {u["username"] for u in response.get_json()} == {"admin", "checker", "maker"}


def test_checker_lists_makers_only(client, checker, maker, make_user, auth_header):
    make_user("other-checker", "checker")
    response = client.get("/users", headers=auth_header(checker))
    assert [u["username"] for u in response.get_json()] == ["maker"]


def test_maker_cannot_list(client, maker, auth_header):
    assert client.get("/users", headers=auth_header(maker)).status_code == 403


def test_maker_reads_only_self(client, maker, checker, auth_header):
    assert client.get(f"/users/{maker.id}", headers=auth_header(maker)).status_code == 200
    assert client.get(f"/users/{checker.id}", headers=auth_header(maker)).status_code == 403


def test_get_unknown_user(client, admin, auth_header):
    assert client.get("/users/nope", headers=auth_header(admin)).status_code == 404


# ---------------------------------------------------------------------
# create
# ---------------------------------------------------------------------

def test_admin_creates_user(app, client, admin, auth_header):
    response = client.post("/users", json=_new_user(role="checker"), headers=auth_header(admin))
    assert response.status_code == 201
    body = response.get_json()
    assert body["role"] == "checker"
    assert body["isActive"] is True
    assert "passwordHash" not in body

    with app.app_context():
        entry = AuditLog.query.filter_by(entity_id=body["id"], action="CREATE").one()
        assert "password_hash" not in entry.after_data


def test_checker_creates_maker_but_not_admin(client, checker, auth_header):
    headers = auth_header(checker)
    assert client.post("/users", json=_new_user(), headers=headers).status_code == 201
    response = client.post("/users", json=_new_user(username="boss", role="admin"), headers=headers)
    assert response.status_code == 403


def test_checker_cannot_create_checker(client, checker, auth_header):
    response = client.post("/users", json=_new_user(username="peer", role="checker"), headers=auth_header(checker))
    assert response.status_code == 403


def test_checker_create_short_password(client, checker, auth_header):
    response = client.post("/users", json=_new_user(password="1234567"), headers=auth_header(checker))
    assert response.status_code == 400


def test_maker_cannot_create(client, maker, auth_header):
    assert client.post("/users", json=_new_user(), headers=auth_header(maker)).status_code == 403


def test_create_validation(client, admin, auth_header):
    headers = auth_header(admin)
    assert client.post("/users", json={"username": "x"}, headers=headers).status_code == 400
    assert client.post("/users", json=_new_user(password="short"), headers=headers).status_code == 400
    assert client.post("/users", json=_new_user(role="owner"), headers=headers).status_code == 400


def test_duplicate_username(client, admin, maker, auth_header):
    response = client.post("/users", json=_new_user(username="maker"), headers=auth_header(admin))
    assert response.status_code == 400
    assert response.get_json()["error"] == "Username already exists"


# ---------------------------------------------------------------------
# update
# ---------------------------------------------------------------------

def test_maker_updates_own_name(client, maker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"name": "Renamed"}, headers=auth_header(maker))
    assert response.status_code == 200
    assert response.get_json()["name"] == "Renamed"


def test_maker_cannot_change_role(app, client, maker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"role": "admin"}, headers=auth_header(maker))
    assert response.status_code == 403
    with app.app_context():
        assert db.session.get(User, maker.id).role == "maker"


def test_maker_cannot_rename_username(client, maker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"username": "sneaky"}, headers=auth_header(maker))
    assert response.status_code == 403


def test_maker_cannot_edit_others(client, maker, make_user, auth_header):
    other = make_user("other")
    response = client.put(f"/users/{other.id}", json={"name": "X"}, headers=auth_header(maker))
    assert response.status_code == 403


def test_self_deactivation_rejected(client, admin, auth_header):
    response = client.put(f"/users/{admin.id}", json={"isActive": False}, headers=auth_header(admin))
    assert response.status_code == 400


def test_checker_self_deactivation_rejected(app, client, checker, auth_header):
    response = client.put(f"/users/{checker.id}", json={"isActive": False}, headers=auth_header(checker))
    assert response.status_code == 400
    with app.app_context():
        assert db.session.get(User, checker.id).is_active is True


@pytest.mark.parametrize("payload", [
    {"isActive": False},
    {"isActive": True},
    {"name": "N", "isActive": None},
    {"name": "N", "role": None},
    {"username": "maker"},
])
def test_maker_sending_restricted_field_is_forbidden(app, client, maker, auth_header, payload):
    response = client.put(f"/users/{maker.id}", json=payload, headers=auth_header(maker))
    assert response.status_code == 403
    with app.app_context():
        stored = db.session.get(User, maker.id)
        assert stored.name == "Maker"
        assert stored.is_active is True


def test_checker_cannot_keep_own_checker_role(client, checker, auth_header):
    response = client.put(f"/users/{checker.id}", json={"role": "checker"}, headers=auth_header(checker))
    assert response.status_code == 403


def test_rename_to_own_username(client, admin, maker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"username": "maker"}, headers=auth_header(admin))
    assert response.status_code == 200
    assert response.get_json()["username"] == "maker"


def test_checker_deactivates_maker_not_checker(client, checker, maker, make_user, auth_header):
    headers = auth_header(checker)
    response = client.put(f"/users/{maker.id}", json={"isActive": False}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()["isActive"] is False

    peer = make_user("peer", "checker")
    assert client.put(f"/users/{peer.id}", json={"isActive": False}, headers=headers).status_code == 403


def test_checker_cannot_promote(client, checker, maker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"role": "checker"}, headers=auth_header(checker))
    assert response.status_code == 403


def test_admin_promotes(client, admin, maker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"role": "checker"}, headers=auth_header(admin))
    assert response.status_code == 200
    assert response.get_json()["role"] == "checker"


def test_rename_to_taken_username(client, admin, maker, checker, auth_header):
    response = client.put(f"/users/{maker.id}", json={"username": "checker"}, headers=auth_header(admin))
    assert response.status_code == 400


def test_password_change_requires_length(client, maker, auth_header):
    headers = auth_header(maker)
    assert client.put(f"/users/{maker.id}", json={"password": "short"}, headers=headers).status_code == 400
    assert client.put(f"/users/{maker.id}", json={"password": "a-new-secret"}, headers=headers).status_code == 200
    login = client.post("/auth/login", json={"username": "maker", "password": "a-new-secret"})
    assert login.status_code == 200


# ---------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------

def test_admin_deletes_user(app, client, admin, maker, auth_header):
    response = client.delete(f"/users/{maker.id}", headers=auth_header(admin))
    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(User, maker.id) is None


def test_admin_cannot_delete_self(client, admin, auth_header):
    assert client.delete(f"/users/{admin.id}", headers=auth_header(admin)).status_code == 400


def test_checker_cannot_delete(client, checker, maker, auth_header):
    assert client.delete(f"/users/{maker.id}", headers=auth_header(checker)).status_code == 403


def test_delete_unknown(client, admin, auth_header):
    assert client.delete("/users/nope", headers=auth_header(admin)).status_code == 404


def test_user_with_comparisons_cannot_be_deleted(app, client, admin, maker, auth_header):
    with app.app_context():
        db.session.add(Comparison(request_number="REQ-1", title="T", created_by=maker.id))
        db.session.commit()

    response = client.delete(f"/users/{maker.id}", headers=auth_header(admin))
    assert response.status_code == 400
    with app.app_context():
        assert db.session.get(User, maker.id) is not None
