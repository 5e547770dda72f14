SERVICE_PROVIDER = {
    "name": "Casa Inspections",
    "type": "Property Inspector",
    "description": "Licensed home inspections",
    "image": "https://img/casa.png",
    "experience": 12,
    "rating": 4,
    "contact": "casa@casainspections.com",
}

BUNDLE = {
    "name": "First-time buyer pack",
    "description": "Inspection and legal review",
    "price": 899.0,
    "discountPercent": 15,
}


def _provider(client, **overrides):
    return client.post("/api/service-providers", json={**SERVICE_PROVIDER, **overrides}).json()["id"]


def test_create_and_list_bundles(client):
    created = client.post("/api/service-bundles", json=BUNDLE)
    assert created.status_code == 201
    bundle_id = created.json()["id"]
    assert created.json()["serviceIds"] == []

    assert [b["id"] for b in client.get("/api/service-bundles").json()] == [bundle_id]
    assert client.get(f"/api/service-bundles/{bundle_id}").json()["name"] == "First-time buyer pack"
    assert [b["id"] for b in client.get("/api/marketplace/bundles").json()] == [bundle_id]


def test_negative_price_is_400(client):
    assert client.post("/api/service-bundles", json={**BUNDLE, "price": -1}).status_code == 400


def test_add_and_remove_services(client):
    inspector = _provider(client)
    lawyer = _provider(client, name="Lex Law", type="Property Lawyer")
    bundle_id = client.post("/api/service-bundles", json=BUNDLE).json()["id"]

    assert client.post(f"/api/service-bundles/{bundle_id}/services/{inspector}").status_code == 201
    client.post(f"/api/service-bundles/{bundle_id}/services/{lawyer}")
    again = client.post(f"/api/service-bundles/{bundle_id}/services/{inspector}")
    assert again.json()["serviceIds"] == [inspector, lawyer]

    services = client.get(f"/api/service-bundles/{bundle_id}/services").json()
    assert [s["name"] for s in services] == ["Casa Inspections", "Lex Law"]

    assert client.delete(f"/api/service-bundles/{bundle_id}/services/{inspector}").status_code == 204
    assert client.delete(f"/api/service-bundles/{bundle_id}/services/{inspector}").status_code == 404
    assert client.get(f"/api/service-bundles/{bundle_id}").json()["serviceIds"] == [lawyer]


def test_adding_unknown_service_or_bundle_is_404(client):
    inspector = _provider(client)
    bundle_id = client.post("/api/service-bundles", json=BUNDLE).json()["id"]

    assert client.post(f"/api/service-bundles/{bundle_id}/services/nope").status_code == 404
    missing = client.post(f"/api/service-bundles/nope/services/{inspector}")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Service bundle not found"


def test_marketplace_bundle_includes_services(client, db):
    inspector = _provider(client)
    bundle_id = client.post("/api/service-bundles", json={**BUNDLE, "serviceIds": [inspector, "gone"]}).json()["id"]

    detail = client.get(f"/api/marketplace/bundles/{bundle_id}")

    assert detail.status_code == 200
    assert [s["id"] for s in detail.json()["services"]] == [inspector]
    assert client.get("/api/marketplace/bundles/nope").status_code == 404
