"""End-to-end tests for the REST API through FastAPI's TestClient."""

import uuid

import pytest

from conftest import make_ehr_system, make_provider
from provider_onboarding.api.dependencies import get_storage


def _fields(response):
    return {e["field"] for e in response.json()["errors"]}


def _create_provider(client, **overrides):
    response = client.post("/api/providers", json=make_provider(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


def _create_ehr(client, **overrides):
    response = client.post("/api/ehr-systems", json=make_ehr_system(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

def test_health_reports_database(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

def test_empty_provider_list(client):
    response = client.get("/api/providers")
    assert response.status_code == 200
    assert response.json() == []


def test_create_provider_defaults_to_pending(client):
    body = _create_provider(client)

    assert uuid.UUID(body["id"])
    assert body["status"] == "Pending"
    assert body["providerName"] == "Lakeside General Hospital"
    assert body["lastDataFetch"] is None
    assert body["onboardedDate"]


def test_create_provider_with_client_generated_id(client):
    client_id = str(uuid.uuid4())
    body = _create_provider(client, id=client_id)
    assert body["id"] == client_id


def test_create_provider_then_get_is_identical(client):
    created = _create_provider(client)

    fetched = client.get(f"/api/providers/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created


@pytest.mark.parametrize(
    "overrides",
    [{"contactEmail": "not-an-email"}, {"contactEmail": ""}, {"contactEmail": "a@b.co\n"}],
)
def test_create_provider_rejects_bad_email(client, overrides):
    response = client.post("/api/providers", json=make_provider(**overrides))
    assert response.status_code == 400
    assert response.json()["message"] == "Validation error"
    assert "contactEmail" in _fields(response)


def test_create_provider_rejects_missing_email(client):
    payload = make_provider()
    del payload["contactEmail"]
    response = client.post("/api/providers", json=payload)
    assert response.status_code == 400
    assert "contactEmail" in _fields(response)


@pytest.mark.parametrize(
    "phone", ["555-123-4567", "123456789", "phone12345", "5551234567\n", "\uff15" * 10]
)
def test_create_provider_rejects_bad_phone(client, phone):
    response = client.post("/api/providers", json=make_provider(contactPhone=phone))
    assert response.status_code == 400
    assert _fields(response) == {"contactPhone"}


def test_create_provider_rejects_non_object_body(client):
    response = client.post("/api/providers", json=["nope"])
    assert response.status_code == 400


def test_create_provider_rejects_unknown_ehr(client):
    response = client.post("/api/providers", json=make_provider(ehrId=str(uuid.uuid4())))
    assert response.status_code == 400
    assert _fields(response) == {"ehrId"}
    assert client.get("/api/providers").json() == []


@pytest.mark.parametrize("field", ["id", "ehrId"])
def test_create_provider_rejects_uuid_with_trailing_newline(client, field):
    ehr = _create_ehr(client)
    value = (ehr["id"] if field == "ehrId" else str(uuid.uuid4())) + "\n"
    response = client.post("/api/providers", json=make_provider(**{field: value}))
    assert response.status_code == 400
    assert _fields(response) == {field}


def test_delete_unknown_provider(client):
    response = client.delete(f"/api/providers/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json() == {"message": "Healthcare provider not found"}


def test_delete_provider(client):
    created = _create_provider(client)

    response = client.delete(f"/api/providers/{created['id']}")
    assert response.status_code == 204

    ids = [p["id"] for p in client.get("/api/providers").json()]
    assert created["id"] not in ids


def test_delete_provider_with_history_conflicts(client):
    created = _create_provider(client)
    client.post(
        "/api/data-history",
        json={"providerId": created["id"], "s3Location": "s3://fetches/1.ndjson"},
    )

    response = client.delete(f"/api/providers/{created['id']}")
    assert response.status_code == 409
    assert client.get(f"/api/providers/{created['id']}").status_code == 200


def test_get_unknown_provider(client):
    assert client.get(f"/api/providers/{uuid.uuid4()}").status_code == 404


def test_malformed_provider_id(client):
    response = client.get("/api/providers/not-a-uuid")
    assert response.status_code == 400
    assert _fields(response) == {"provider_id"}


@pytest.mark.parametrize("method", ["put", "patch"])
def test_update_provider_partial(client, method):
    created = _create_provider(client)

    response = getattr(client, method)(
        f"/api/providers/{created['id']}", json={"status": "Active"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Active"
    assert body["contactEmail"] == created["contactEmail"]


def test_update_provider_validates_supplied_fields(client):
    created = _create_provider(client)

    response = client.patch(f"/api/providers/{created['id']}", json={"contactPhone": "12"})
    assert response.status_code == 400
    assert _fields(response) == {"contactPhone"}


def test_update_unknown_provider(client):
    response = client.patch(f"/api/providers/{uuid.uuid4()}", json={"status": "Active"})
    assert response.status_code == 404


def test_search_providers(client):
    _create_provider(client, providerName="Lakeside General")
    _create_provider(client, providerName="Hillview Clinic", providerType="Clinic")

    names = [p["providerName"] for p in client.get("/api/providers?search=HILL").json()]
    assert names == ["Hillview Clinic"]


def test_filter_providers_by_ehr(client):
    ehr = _create_ehr(client)
    _create_provider(client, providerName="Linked", ehrId=ehr["id"])
    _create_provider(client, providerName="Unlinked")

    names = [p["providerName"] for p in client.get(f"/api/providers?ehrId={ehr['id']}").json()]
    assert names == ["Linked"]

    nested = client.get(f"/api/ehr-systems/{ehr['id']}/providers")
    assert [p["providerName"] for p in nested.json()] == ["Linked"]


# ---------------------------------------------------------------------------
# EHR systems
# ---------------------------------------------------------------------------

def test_create_ehr_defaults_to_supported(client):
    body = _create_ehr(client)
    assert body["isSupported"] is True

    listed = client.get("/api/ehr-systems").json()
    assert [s["id"] for s in listed] == [body["id"]]
    assert listed[0]["isSupported"] is True


def test_create_ehr_then_get_is_identical(client):
    created = _create_ehr(client, bulkfhirUrl="https://fhir.example.com/$export")
    fetched = client.get(f"/api/ehr-systems/{created['id']}")
    assert fetched.json() == created


def test_create_ehr_requires_name(client):
    response = client.post("/api/ehr-systems", json={"apiEndpoint": "https://x.example.com"})
    assert response.status_code == 400
    assert _fields(response) == {"systemName"}


def test_duplicate_ehr_name_conflicts(client):
    _create_ehr(client, systemName="Epic")
    response = client.post("/api/ehr-systems", json=make_ehr_system(systemName="Epic"))
    assert response.status_code == 409
    assert response.json() == {"message": "EHR system 'Epic' already exists"}


def test_toggle_ehr_support(client):
    created = _create_ehr(client)

    response = client.patch(f"/api/ehr-systems/{created['id']}", json={"isSupported": False})
    assert response.status_code == 200
    assert response.json()["isSupported"] is False
    assert response.json()["systemName"] == created["systemName"]


def test_unknown_ehr(client):
    missing = uuid.uuid4()
    assert client.get(f"/api/ehr-systems/{missing}").status_code == 404
    assert client.get(f"/api/ehr-systems/{missing}/providers").status_code == 404
    assert client.put(f"/api/ehr-systems/{missing}", json={"isSupported": True}).status_code == 404


# ---------------------------------------------------------------------------
# Data fetch history
# ---------------------------------------------------------------------------

def test_create_history(client):
    provider = _create_provider(client)

    response = client.post(
        "/api/data-history",
        json={"providerId": provider["id"], "s3Location": "s3://fetches/abc.ndjson"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "completed"
    assert body["providerId"] == provider["id"]

    assert client.get(f"/api/data-history/{body['id']}").json() == body
    assert client.get("/api/data-history").json() == [body]

    refreshed = client.get(f"/api/providers/{provider['id']}").json()
    assert refreshed["lastDataFetch"] == body["fetchDate"]


def test_history_with_unknown_provider_is_rejected(client):
    response = client.post(
        "/api/data-history",
        json={"providerId": str(uuid.uuid4()), "s3Location": "s3://fetches/abc.ndjson"},
    )
    assert response.status_code == 400
    assert _fields(response) == {"providerId"}
    assert client.get("/api/data-history").json() == []


def test_history_provider_id_with_trailing_newline_is_rejected(client):
    provider = _create_provider(client)
    response = client.post(
        "/api/data-history",
        json={"providerId": provider["id"] + "\n", "s3Location": "s3://fetches/abc.ndjson"},
    )
    assert response.status_code == 400
    assert _fields(response) == {"providerId"}
    assert client.get("/api/data-history").json() == []


def test_history_requires_location(client):
    provider = _create_provider(client)
    response = client.post("/api/data-history", json={"providerId": provider["id"]})
    assert response.status_code == 400
    assert _fields(response) == {"s3Location"}


def test_history_by_provider_and_search(client):
    lakeside = _create_provider(client, providerName="Lakeside General")
    hillview = _create_provider(client, providerName="Hillview Clinic", providerType="Clinic")
    for provider, key in [(lakeside, "1"), (hillview, "2"), (lakeside, "3")]:
        client.post(
            "/api/data-history",
            json={"providerId": provider["id"], "s3Location": f"s3://fetches/{key}"},
        )

    by_provider = client.get(f"/api/data-history/provider/{lakeside['id']}").json()
    assert [r["s3Location"] for r in by_provider] == ["s3://fetches/3", "s3://fetches/1"]

    searched = client.get("/api/data-history?search=hill").json()
    assert [r["s3Location"] for r in searched] == ["s3://fetches/2"]


def test_unknown_history_record(client):
    assert client.get("/api/data-history/999").status_code == 404


# ---------------------------------------------------------------------------
# Unexpected failures
# ---------------------------------------------------------------------------

class _BrokenStorage:
    def list_providers(self):
        raise RuntimeError("connection reset")

    def create_ehr_system(self, values):
        raise RuntimeError("connection reset")


def test_storage_failure_maps_to_500(app, client):
    app.dependency_overrides[get_storage] = _BrokenStorage

    listed = client.get("/api/providers")
    assert listed.status_code == 500
    assert listed.json() == {"message": "Failed to fetch healthcare providers"}

    created = client.post("/api/ehr-systems", json=make_ehr_system())
    assert created.status_code == 500
    assert created.json() == {"message": "Failed to create EHR system"}
