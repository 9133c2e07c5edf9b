# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from catalog_import.main import app
from catalog_import.schemas.fields import PRODUCT_FIELDS


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def payload():
    return {
        "headers": ["SKU", "Name", "Price", "Status"],
        "rows": [
            ["EXISTING-001", "Headphones", "12,5", "actve"],
            ["NEW-001", "Speaker", "99", "active"],
        ],
        "mapping": {"SKU": "sku", "Name": "name", "Price": "price", "Status": "status"},
        "existing_keys": ["EXISTING-001"],
    }


def test_list_fields(client):
    resp = client.get("/api/import/products/fields")
    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == len(PRODUCT_FIELDS)
    assert body[0]["key"] == "sku"
    assert body[0]["required"] is True


def test_validate(client, payload):
    resp = client.post("/api/import/products/validate", json=payload)
    assert resp.status_code == 200
    body = resp.json()

    assert body["is_valid"] is False
    assert body["summary"]["error_rows"] == [0]
    assert body["summary"]["valid_rows"] == 1
    codes = [i["code"] for i in body["rows"][0]["issues"]]
    assert codes == ["unique_key_exists", "number_comma_decimal", "enum_invalid"]


def test_validate_configuration_error(client, payload):
    payload["mapping"]["Colour"] = "colour"
    resp = client.post("/api/import/products/validate", json=payload)
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "configuration_error"
    problem_codes = {p["code"] for p in body["details"]["problems"]}
    assert problem_codes == {"unknown_column", "unknown_field"}


def test_auto_fix(client, payload):
    resp = client.post("/api/import/products/auto-fix", json=payload)
    assert resp.status_code == 200
    body = resp.json()
    afters = [s["preview"]["after"] for s in body["suggestions"]]
    assert afters == ["12.5", "active"]
    assert body["total_affected_rows"] == 1
    assert body["estimated_time"] == 1


def test_upload_suggests_mapping(client):
    content = b"Product Code,Prodcut Name,Unit Price,Notes\nHP-001,Headphones,10,fragile\n"
    resp = client.post(
        "/api/import/products/upload",
        files={"file": ("products.csv", content, "text/csv")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["row_count"] == 1
    assert body["preview_rows"] == [["HP-001", "Headphones", "10", "fragile"]]
    assert body["suggested_mapping"] == {
        "Product Code": "sku",
        "Prodcut Name": "name",
        "Unit Price": "price",
    }
    assert body["unmapped_columns"] == ["Notes"]


def test_upload_without_rows_is_rejected(client):
    resp = client.post(
        "/api/import/products/upload",
        files={"file": ("empty.csv", b"SKU,Name\n", "text/csv")},
    )
    assert resp.status_code == 400


def test_upload_bad_encoding_is_rejected(client):
    resp = client.post(
        "/api/import/products/upload",
        files={"file": ("latin.csv", "SKU,Name\nA-1,Caf\xe9\n".encode("latin-1"), "text/csv")},
    )
    assert resp.status_code == 400
    assert "UTF-8" in resp.json()["detail"]


def test_validate_runs_the_chunked_pass(client, payload, monkeypatch):
    import catalog_import.api.imports as imports_api

    calls = []
    original = imports_api.validate_data_async

    async def spy(*args, **kwargs):
        calls.append(args)
        return await original(*args, **kwargs)

    monkeypatch.setattr(imports_api, "validate_data_async", spy)
    resp = client.post("/api/import/products/validate", json=payload)
    assert resp.status_code == 200
    assert len(calls) == 1


def test_field_groups(client):
    resp = client.get("/api/import/products/field-groups")
    assert resp.status_code == 200
    body = resp.json()
    assert body["basic"]["label"] == "Basic Information"
    assert body["basic"]["fields"][0] == "sku"


def test_template_download(client):
    resp = client.get("/api/import/products/template")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]
    lines = resp.text.splitlines()
    assert lines[0] == "SKU,Product Name,Description,Price,Stock Quantity,Category,Brand,Status"
    assert lines[1].startswith("DEMO-001,Premium Wireless Headphones,")
    assert len(lines) == 4
