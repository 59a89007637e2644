import json
from fastapi.testclient import TestClient
from leadscore.config import DEFAULT_RULES, settings
from leadscore.main import app


client = TestClient(app)


def test_ingest_csv():
    csv_data = (
        "Name,Email,Company,Status\n"
        "Pat Lee,lead@gmail.com,Acme Widgets,Contacted\n"
        "No Contact,,,\n"
    )
    files = {"file": ("leads.csv", csv_data, "text/csv")}
    r = client.post("/ingest_csv", files=files)
    assert r.status_code == 200
    data = r.json()
    assert data["summary"]["count_in"] == 2
    assert data["summary"]["by_status"] == {"contacted": 1, "new": 1}
    first, second = data["results"]
    assert first["score"] == 70
    assert second["email"] is None
    assert second["score"] == 35


def test_ingest_csv_column_map():
    csv_data = "Full Name,Mail\nJane Doe,jane@acme.com\n"
    files = {"file": ("leads.csv", csv_data, "text/csv")}
    column_map = json.dumps({"name": "Full Name", "email": "Mail"})
    r = client.post("/ingest_csv", files=files, params={"column_map": column_map})
    assert r.status_code == 200
    row = r.json()["results"][0]
    assert row["name"] == "Jane Doe"
    assert row["email"] == "jane@acme.com"


def test_ingest_rejects_non_csv():
    files = {"file": ("leads.txt", "a,b\n", "text/plain")}
    r = client.post("/ingest_csv", files=files)
    assert r.status_code == 400


def test_rules_config_roundtrip(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "RULES_PATH", str(tmp_path / "rules.json"))
    r1 = client.get("/config/rules")
    assert r1.status_code == 200
    rules = r1.json()
    assert rules["status_points"] == DEFAULT_RULES["status_points"]
    rules["status_points"]["converted"] = 40
    r2 = client.put("/config/rules", json=rules)
    assert r2.status_code == 200
    assert r2.json()["status_points"]["converted"] == 40
    r3 = client.post("/score", json={"name": "Pat Lee", "email": "lead@gmail.com", "company": "Acme Widgets", "status": "converted"})
    assert r3.json()["score"] == 95


def test_rules_config_rejects_invalid(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "RULES_PATH", str(tmp_path / "rules.json"))
    rules = client.get("/config/rules").json()
    del rules["points"]["base"]
    assert client.put("/config/rules", json=rules).status_code == 422
    rules = client.get("/config/rules").json()
    rules["consumer_domains"].append("Gmail.COM")
    assert client.put("/config/rules", json=rules).status_code == 422


def test_ingest_rejects_non_object_column_map():
    files = {"file": ("leads.csv", "Name\nJane Doe\n", "text/csv")}
    for column_map in ("5", "[\"Name\"]", "not json"):
        r = client.post("/ingest_csv", files=files, params={"column_map": column_map})
        assert r.status_code == 400
