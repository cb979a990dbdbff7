import orjson
import pytest
from fastapi.testclient import TestClient

import main
from bmecat import loads
from bmecat.converter import dumps_json


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "UPLOAD_DIR", tmp_path)
    main.limiter.enabled = False
    yield TestClient(main.app)
    main.limiter.enabled = True


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_bmecat_to_json(client, sample_bytes):
    response = client.post(
        "/bmecat-to-json",
        files={"file": ("sample catalog.xml", sample_bytes, "application/xml")},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    data = orjson.loads(response.content)
    assert data["catalog_id"] == "CAT-1"
    assert len(data["products"]) == 2


def test_json_to_bmecat(client, catalog):
    response = client.post(
        "/json-to-bmecat",
        files={"file": ("catalog.json", dumps_json(catalog), "application/json")},
    )
    assert response.status_code == 200
    assert response.content.startswith(b"<?xml")
    assert loads(response.content).catalog_id == "CAT-1"


def test_wrong_extension(client, sample_bytes):
    response = client.post(
        "/bmecat-to-json",
        files={"file": ("catalog.txt", sample_bytes, "text/plain")},
    )
    assert response.status_code == 400


def test_malformed_upload(client):
    response = client.post(
        "/bmecat-to-json",
        files={"file": ("broken.xml", b"not xml at all", "application/xml")},
    )
    assert response.status_code == 422
    assert "well-formed" in response.json()["detail"]


def test_invalid_catalog_json(client):
    response = client.post(
        "/json-to-bmecat",
        files={"file": ("catalog.json", b'{"catalog_version": "1"}', "application/json")},
    )
    assert response.status_code == 422


def test_temporary_files_are_removed(client, tmp_path, sample_bytes):
    client.post(
        "/bmecat-to-json",
        files={"file": ("catalog.xml", sample_bytes, "application/xml")},
    )
    client.post(
        "/bmecat-to-json",
        files={"file": ("broken.xml", b"<<<", "application/xml")},
    )
    assert list(tmp_path.iterdir()) == []


def test_file_too_large(client, monkeypatch, sample_bytes):
    monkeypatch.setattr(main, "MAX_FILE_SIZE", 10)
    response = client.post(
        "/bmecat-to-json",
        files={"file": ("catalog.xml", sample_bytes, "application/xml")},
    )
    assert response.status_code == 400
