SERVICE_PROVIDER = {
    "name": "Casa Inspections",
    "type": "Property Inspector",
    "description": "Licensed home inspections",
    "image": "https://img/casa.png",
    "experience": 12,
    "rating": 5,
    "contact": "casa@casainspections.com",
}

FINANCING_PROVIDER = {
    "providerId": "lender-1",
    "name": "First Home Lending",
    "contactName": "Dana Reyes",
    "contactEmail": "dana@firsthomelending.com",
    "contactPhone": "555-0100",
    "description": "Mortgages for first-time buyers",
    "servicesOffered": ["Mortgages", "FHA Loans"],
    "areasServed": ["Austin", "Dallas"],
}


def test_service_provider_crud(client):
    created = client.post("/api/service-providers", json=SERVICE_PROVIDER)
    assert created.status_code == 201
    provider_id = created.json()["id"]

    client.post("/api/service-providers", json={**SERVICE_PROVIDER, "name": "Lex Law", "type": "Property Lawyer"})

    assert len(client.get("/api/service-providers").json()) == 2
    assert client.get(f"/api/service-providers/{provider_id}").json()["name"] == "Casa Inspections"

    lawyers = client.get("/api/service-providers/type/Property Lawyer").json()
    assert [p["name"] for p in lawyers] == ["Lex Law"]


def test_service_provider_missing_is_404(client):
    response = client.get("/api/service-providers/nope")
    assert response.status_code == 404
    assert response.json()["detail"] == "Service provider not found"


def test_service_provider_rating_out_of_range(client):
    assert client.post("/api/service-providers", json={**SERVICE_PROVIDER, "rating": 6}).status_code == 400


def test_financing_provider_create_and_filter(client):
    created = client.post("/api/financing-providers", json=FINANCING_PROVIDER)
    assert created.status_code == 201
    assert created.json()["userType"] == "vendor"
    assert created.json()["verified"] is False

    client.post("/api/financing-providers", json={
        **FINANCING_PROVIDER,
        "providerId": "lender-2",
        "servicesOffered": ["Refinancing"],
        "areasServed": ["Houston"],
    })

    assert len(client.get("/api/financing-providers").json()) == 2
    fha = client.get("/api/financing-providers", params={"service": "fha loans"}).json()
    assert [p["providerId"] for p in fha] == ["lender-1"]
    houston = client.get("/api/financing-providers", params={"area": "Houston", "service": "Refinancing"}).json()
    assert [p["providerId"] for p in houston] == ["lender-2"]

    assert client.get("/api/financing-providers/lender-2").json()["name"] == "First Home Lending"


def test_duplicate_financing_provider_is_409(client):
    client.post("/api/financing-providers", json=FINANCING_PROVIDER)
    response = client.post("/api/financing-providers", json=FINANCING_PROVIDER)
    assert response.status_code == 409


def test_financing_provider_validation(client):
    bad_email = client.post("/api/financing-providers", json={**FINANCING_PROVIDER, "contactEmail": "not-an-email"})
    assert bad_email.status_code == 400
    assert "contactEmail" in bad_email.json()["error"]

    no_services = client.post("/api/financing-providers", json={**FINANCING_PROVIDER, "servicesOffered": []})
    assert no_services.status_code == 400


def test_financing_provider_missing_is_404(client):
    assert client.get("/api/financing-providers/unknown").status_code == 404


def test_financing_provider_is_stored_under_its_provider_id(client, db):
    created = client.post("/api/financing-providers", json=FINANCING_PROVIDER).json()

    assert created["id"] == "lender-1"
    assert db.data["financing_providers"]["lender-1"]["name"] == "First Home Lending"


def test_concurrent_registration_keeps_the_first_provider(client, db):
    # another request stored lender-1 between this one's validation and its write
    db.collection("financing_providers").document("lender-1").set({**FINANCING_PROVIDER, "name": "Winner"})

    response = client.post("/api/financing-providers", json=FINANCING_PROVIDER)

    assert response.status_code == 409
    assert db.data["financing_providers"]["lender-1"]["name"] == "Winner"


def test_provider_id_with_slash_is_400(client):
    response = client.post("/api/financing-providers", json={**FINANCING_PROVIDER, "providerId": "a/b"})
    assert response.status_code == 400


def test_unknown_types_are_rejected(client):
    provider = client.post("/api/service-providers", json={**SERVICE_PROVIDER, "type": "Astrologer"})
    assert provider.status_code == 400
    assert "type" in provider.json()["error"]

    lender = client.post("/api/financing-providers", json={**FINANCING_PROVIDER, "servicesOffered": ["Payday Loans"]})
    assert lender.status_code == 400
    assert "Payday Loans" in lender.json()["error"]
