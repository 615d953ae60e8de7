import json
import uuid

import pytest
from fastapi.testclient import TestClient

from homeledger.core.config import Settings
from homeledger.main import create_app
from homeledger.schemas import ReceiptData

API = "/api/v1"


class FakeRecognizer:
    def __init__(self, data: ReceiptData):
        self.data = data
        self.calls = []

    async def process_receipt(self, image_identifier: str) -> ReceiptData:
        self.calls.append(image_identifier)
        return self.data


@pytest.fixture
def app_settings(tmp_path):
    return Settings(DATA_DIR=tmp_path / "data", SEED_DEFAULTS=True)


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as client:
        yield client


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_first_open_seeds_defaults(client):
    properties = client.get(f"{API}/properties/").json()
    assert [p["name"] for p in properties] == ["My Home"]
    assert properties[0]["is_default"] is True
    assert properties[0]["room_count"] == 12

    rooms = client.get(f"{API}/rooms/").json()
    assert len(rooms) == 12
    assert all(room["property_id"] == properties[0]["id"] for room in rooms)
    assert len(client.get(f"{API}/categories/").json()) == 13
    assert {t["name"] for t in client.get(f"{API}/tags/").json()} == {
        "Essential", "High Value", "Electronics", "Insurance-Critical",
    }


def test_item_lifecycle_with_documentation_score(client):
    room = client.get(f"{API}/rooms/").json()[0]
    category = client.get(f"{API}/categories/").json()[0]

    response = client.post(f"{API}/items/", json={
        "name": "MacBook Pro",
        "purchase_price": "2499.00",
        "room_id": room["id"],
        "category_id": category["id"],
    })
    assert response.status_code == 201
    item = response.json()
    assert item["currency_code"] == "USD"
    assert item["documentation_score"] == pytest.approx(0.50)
    assert item["missing_documentation"] == ["Photo", "Receipt", "Serial Number"]
    assert item["is_documented"] is False

    photo = client.post(f"{API}/items/{item['id']}/photos", json={"image_identifier": "mbp.jpg"})
    assert photo.status_code == 201

    report = client.get(f"{API}/items/{item['id']}/documentation").json()
    assert report["score"] == pytest.approx(0.80)
    assert report["missing"] == ["Receipt", "Serial Number"]
    assert report["is_documented"] is True

    updated = client.put(f"{API}/items/{item['id']}", json={"serial_number": "C02XYZ"}).json()
    assert updated["documentation_score"] == pytest.approx(0.90)

    assert client.delete(f"{API}/items/{item['id']}").status_code == 204
    assert client.get(f"{API}/items/{item['id']}").status_code == 404


def test_invalid_item_is_rejected(client):
    assert client.post(f"{API}/items/", json={"name": "  "}).status_code == 422
    assert client.post(f"{API}/items/", json={"name": "Lamp", "purchase_price": "-3"}).status_code == 422
    assert client.post(f"{API}/items/", json={"name": "Lamp", "currency_code": "dollars"}).status_code == 422
    assert client.get(f"{API}/items/").json() == []


def test_item_with_unknown_room_is_not_found(client):
    response = client.post(f"{API}/items/", json={"name": "Lamp", "room_id": str(uuid.uuid4())})
    assert response.status_code == 404


def test_default_rooms_cannot_be_deleted(client):
    default_room = client.get(f"{API}/rooms/").json()[0]
    response = client.delete(f"{API}/rooms/{default_room['id']}")
    assert response.status_code == 400
    assert response.json()["detail"] == "Default rooms cannot be deleted."

    custom = client.post(f"{API}/rooms/", json={"name": "Wine Cellar"}).json()
    assert client.delete(f"{API}/rooms/{custom['id']}").status_code == 204


def test_duplicate_tag_is_rejected(client):
    response = client.post(f"{API}/tags/", json={"name": "essential"})
    assert response.status_code == 422
    assert "already exists" in response.json()["detail"]


def test_export_json_and_csv(client):
    client.post(f"{API}/items/", json={"name": "Bike", "purchase_price": "800"})

    as_json = client.get(f"{API}/backup/export", params={"format": "json"})
    assert as_json.status_code == 200
    assert as_json.headers["content-type"].startswith("application/json")
    assert "homeledger-backup-" in as_json.headers["content-disposition"]
    document = as_json.json()
    assert document["schemaVersion"] == "1.2.0"
    assert [item["purchasePrice"] for item in document["items"]] == ["800"]

    as_csv = client.get(f"{API}/backup/export", params={"format": "csv"})
    assert as_csv.status_code == 200
    assert as_csv.headers["content-type"].startswith("text/csv")
    assert "homeledger-export-" in as_csv.headers["content-disposition"]
    assert as_csv.text.splitlines()[0].startswith("Name,Brand,Model")
    assert as_csv.text.splitlines()[1].startswith("Bike,")


def test_restore_upload_requires_strategy(client):
    files = {"file": ("backup.json", b"{}", "application/json")}
    assert client.post(f"{API}/backup/restore", files=files).status_code == 422


def test_restore_upload_merge_and_replace(client):
    client.post(f"{API}/items/", json={"name": "Bike", "purchase_price": "800"})
    exported = client.get(f"{API}/backup/export").content

    files = {"file": ("backup.json", exported, "application/json")}
    merged = client.post(f"{API}/backup/restore", params={"strategy": "merge"}, files=files)
    assert merged.status_code == 200
    body = merged.json()
    assert body["completed"] is True
    assert body["updated"]["item"] == 1
    assert body["created"] == {}
    assert body["summary_text"].startswith("Restored ")

    replaced = client.post(f"{API}/backup/restore", params={"strategy": "replace"}, files=files)
    assert replaced.status_code == 200
    assert replaced.json()["created"]["room"] == 12
    assert [item["name"] for item in client.get(f"{API}/items/").json()] == ["Bike"]


def test_restore_corrupt_upload_changes_nothing(client):
    client.post(f"{API}/items/", json={"name": "Bike"})
    files = {"file": ("backup.json", b"{\"schemaVersion\": \"1.2.0\", \"items\": [", "application/json")}

    response = client.post(f"{API}/backup/restore", params={"strategy": "replace"}, files=files)

    assert response.status_code == 422
    assert [item["name"] for item in client.get(f"{API}/items/").json()] == ["Bike"]


def test_restore_from_newer_release_is_rejected(client):
    document = json.dumps({"schemaVersion": "4.0.0", "items": []}).encode()
    files = {"file": ("backup.json", document, "application/json")}
    response = client.post(f"{API}/backup/restore", params={"strategy": "merge"}, files=files)
    assert response.status_code == 422
    assert "newer" in response.json()["detail"]


def test_oversized_upload_is_refused(app_settings):
    app_settings.MAX_BACKUP_BYTES = 10
    with TestClient(create_app(app_settings)) as client:
        files = {"file": ("backup.json", b"{" + b" " * 64 + b"}", "application/json")}
        response = client.post(f"{API}/backup/restore", params={"strategy": "merge"}, files=files)
    assert response.status_code == 413


def test_scan_without_recognizer_is_unavailable(client):
    response = client.post(f"{API}/receipts/scan", json={"image_identifier": "r.jpg"})
    assert response.status_code == 503


def test_scan_stores_recognizer_output_unchanged(app_settings):
    recognizer = FakeRecognizer(ReceiptData(vendor="Hardware Hut", total="59.98", raw_text="HAMMER", confidence=1.7))
    with TestClient(create_app(app_settings, recognizer=recognizer)) as client:
        response = client.post(f"{API}/receipts/scan", json={"image_identifier": "hut.jpg"})

    assert response.status_code == 201
    receipt = response.json()
    assert recognizer.calls == ["hut.jpg"]
    assert receipt["vendor"] == "Hardware Hut"
    assert receipt["total"] == "59.98"
    assert receipt["confidence"] == 1.7
    assert receipt["linked_item_id"] is None


def test_archive_export_and_restore_carries_photo_files(app_settings, memory_photos):
    with TestClient(create_app(app_settings, photo_storage=memory_photos)) as client:
        item = client.post(f"{API}/items/", json={"name": "Bike"}).json()
        client.post(f"{API}/items/{item['id']}/photos", json={"image_identifier": "bike.jpg"})
        memory_photos.files["bike.jpg"] = b"bike-bytes"

        exported = client.get(f"{API}/backup/export", params={"format": "zip"})
        assert exported.status_code == 200
        assert exported.headers["content-type"] == "application/zip"
        assert exported.headers["content-disposition"].endswith('.zip"')

        memory_photos.files.clear()
        files = {"file": ("backup.zip", exported.content, "application/zip")}
        restored = client.post(f"{API}/backup/restore", params={"strategy": "replace"}, files=files)

    assert restored.status_code == 200
    assert restored.json()["created"]["photo"] == 1
    assert restored.json()["photo_files_restored"] == 1
    assert memory_photos.files == {"bike.jpg": b"bike-bytes"}
