SERVICE_PROVIDER = {
    "name": "Casa Inspections",
    "type": "Property Inspector",
    "description": "Licensed home inspections",
    "image": "https://img/casa.png",
    "experience": 12,
    "rating": 4,
    "contact": "casa@casainspections.com",
}

REQUEST = {
    "serviceType": "Property Inspector",
    "userId": "u1",
    "propertyZipCode": "78702",
    "preferredDate": "2026-11-10",
    "preferredTime": "09:30",
    "notes": "Check the attic",
}


def _provider(client, **overrides):
    return client.post("/api/service-providers", json={**SERVICE_PROVIDER, **overrides}).json()["id"]


def test_request_goes_to_highest_rated_provider_in_area(client):
    _provider(client, name="Okay Inspections", rating=3)
    best = _provider(client, name="Top Inspections", rating=5, serviceAreas=["78702", "78703"])
    _provider(client, name="Far Away", rating=5, serviceAreas=["10001"])
    _provider(client, name="Lex Law", type="Property Lawyer", rating=5)

    created = client.post("/api/service-requests", json=REQUEST)

    assert created.status_code == 201
    body = created.json()
    assert body["serviceProviderId"] == best
    assert body["status"] == "pending"
    assert body["preferredDate"] == "2026-11-10"

    fetched = client.get(f"/api/service-requests/{body['id']}")
    assert fetched.json()["notes"] == "Check the attic"


def test_request_without_matching_provider_is_404(client):
    _provider(client, serviceAreas=["10001"])

    response = client.post("/api/service-requests", json=REQUEST)
    assert response.status_code == 404
    assert response.json()["detail"] == "No service providers found for this service type in your area"


def test_unknown_service_type_is_400(client):
    response = client.post("/api/service-requests", json={**REQUEST, "serviceType": "Astrologer"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("serviceType")


def test_list_filters_by_user_and_provider(client):
    provider_id = _provider(client)
    client.post("/api/service-requests", json=REQUEST)
    client.post("/api/service-requests", json={**REQUEST, "userId": "u2"})

    assert len(client.get("/api/service-requests").json()) == 2
    assert [r["userId"] for r in client.get("/api/service-requests", params={"userId": "u2"}).json()] == ["u2"]
    assert len(client.get("/api/service-requests", params={"providerId": provider_id}).json()) == 2
    assert client.get("/api/service-requests", params={"providerId": "other"}).json() == []


def test_update_status(client):
    _provider(client)
    request_id = client.post("/api/service-requests", json=REQUEST).json()["id"]

    accepted = client.patch(f"/api/service-requests/{request_id}/status",
                            json={"status": "accepted", "notes": "See you at 9:30"})
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"
    assert accepted.json()["notes"] == "See you at 9:30"

    declined = client.patch(f"/api/service-requests/{request_id}/status", json={"status": "declined"})
    assert declined.json()["notes"] == "See you at 9:30"

    assert client.patch(f"/api/service-requests/{request_id}/status", json={"status": "maybe"}).status_code == 400
    missing = client.patch("/api/service-requests/nope/status", json={"status": "accepted"})
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Service request not found"


def test_missing_request_is_404(client):
    assert client.get("/api/service-requests/nope").status_code == 404
