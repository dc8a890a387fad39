from pricecompare.extensions import db
from pricecompare.models import Comparison, ComparisonVendor


VENDOR = {
    "name": "Zeta Metals",
    "contactPerson": "Zoe",
    "email": "zoe@zeta.test",
    "phone": "333",
    "address": "3 Zeta Way",
}

ITEM = {
    "name": "Bolt M8",
    "description": "Steel bolt",
    "specification": "M8 x 40, zinc",
    "unit": "pcs",
    "category": "Hardware",
}


# ---------------------------------------------------------------------
# vendors
# ---------------------------------------------------------------------

def test_any_role_creates_vendor(client, maker, auth_header):
    response = client.post("/vendors", json={**VENDOR, "vat": "15"}, headers=auth_header(maker))
    assert response.status_code == 201
    body = response.get_json()
    assert body["vat"] == 15.0
    assert body["contactPerson"] == "Zoe"
    assert body["isActive"] is True


def test_vendor_vat_defaults_to_zero(client, maker, auth_header):
    response = client.post("/vendors", json=VENDOR, headers=auth_header(maker))
    assert response.get_json()["vat"] == 0.0


def test_vendor_required_fields(client, maker, auth_header):
    payload = {**VENDOR, "email": "  "}
    assert client.post("/vendors", json=payload, headers=auth_header(maker)).status_code == 400


def test_vendor_negative_vat(client, maker, auth_header):
    response = client.post("/vendors", json={**VENDOR, "vat": -1}, headers=auth_header(maker))
    assert response.status_code == 400


def test_vendors_listed_by_name(client, maker, vendors, auth_header):
    client.post("/vendors", json=VENDOR, headers=auth_header(maker))
    names = [v["name"] for v in client.get("/vendors", headers=auth_header(maker)).get_json()]
    assert names == ["Acme Supplies", "Bolt Trading", "Zeta Metals"]


def test_vendor_partial_update(client, maker, vendors, auth_header):
    acme = vendors[0]
    response = client.put(f"/vendors/{acme.id}", json={"phone": "999"}, headers=auth_header(maker))
    assert response.status_code == 200
    body = response.get_json()
    assert body["phone"] == "999"
    assert body["name"] == "Acme Supplies"


def test_vendor_not_found(client, maker, auth_header):
    headers = auth_header(maker)
    assert client.get("/vendors/missing", headers=headers).status_code == 404
    assert client.put("/vendors/missing", json={}, headers=headers).status_code == 404
    assert client.delete("/vendors/missing", headers=headers).status_code == 404


def test_delete_vendor(client, maker, vendors, auth_header):
    headers = auth_header(maker)
    assert client.delete(f"/vendors/{vendors[1].id}", headers=headers).status_code == 200
    assert client.get(f"/vendors/{vendors[1].id}", headers=headers).status_code == 404


def test_vendor_in_use_cannot_be_deleted(app, client, maker, vendors, auth_header):
    with app.app_context():
        comparison = Comparison(request_number="REQ-1", title="T", created_by=maker.id)
        comparison.vendor_links.append(ComparisonVendor(vendor_id=vendors[0].id, position=1))
        db.session.add(comparison)
        db.session.commit()

    response = client.delete(f"/vendors/{vendors[0].id}", headers=auth_header(maker))
    assert response.status_code == 400


def test_vendors_require_login(client):
    assert client.get("/vendors").status_code == 401


# ---------------------------------------------------------------------
# items
# ---------------------------------------------------------------------

def test_create_item_normalizes_unit(client, maker, auth_header):
    response = client.post("/items", json=ITEM, headers=auth_header(maker))
    assert response.status_code == 201
    body = response.get_json()
    assert body["unit"] == "PCS"
    assert body["isVatable"] is True


def test_item_unknown_unit(client, maker, auth_header):
    response = client.post("/items", json={**ITEM, "unit": "parsecs"}, headers=auth_header(maker))
    assert response.status_code == 400


def test_item_required_fields(client, maker, auth_header):
    payload = {k: v for k, v in ITEM.items() if k != "specification"}
    assert client.post("/items", json=payload, headers=auth_header(maker)).status_code == 400


def test_item_update_vat_flag(client, checker, items, auth_header):
    cable = items[0]
    response = client.put(f"/items/{cable.id}", json={"isVatable": False}, headers=auth_header(checker))
    assert response.status_code == 200
    assert response.get_json()["isVatable"] is False


def test_items_listed_by_name(client, maker, items, auth_header):
    names = [i["name"] for i in client.get("/items", headers=auth_header(maker)).get_json()]
    assert names == ["Cable", "Site survey"]


def test_units_list(client, maker, auth_header):
    units = client.get("/items/units", headers=auth_header(maker)).get_json()
    assert "NOS" in units
    assert "hours" in units


def test_delete_item(client, admin, items, auth_header):
    headers = auth_header(admin)
    assert client.delete(f"/items/{items[1].id}", headers=headers).status_code == 200
    assert client.get(f"/items/{items[1].id}", headers=headers).status_code == 404
