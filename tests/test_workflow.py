import zipfile
from io import BytesIO

import httpx
import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from fakes import FakeGenerationService, mock_client_factory, png_bytes
from podstudio.application import get_batch_service
from podstudio.core.errors import ElevatedAccessRequired
from podstudio.domain import BatchStatus
from podstudio.infrastructure import ElevatedAccessBroker, configure_access_broker, configure_generation_service


def _row(name, prompt="", refs=()):
    row = [""] * 20
    row[0] = name
    row[11] = prompt
    for offset, url in enumerate(refs):
        row[15 + offset] = url
    return ",".join(row)


def _asset_handler(request):
    if str(request.url).endswith("/ok.png"):
        return httpx.Response(200, content=png_bytes("blue"), headers={"content-type": "image/png"})
    return httpx.Response(404)


@pytest.fixture()
def client():
    from podstudio.app import create_app

    app = create_app()
    get_batch_service().configure(client_factory=mock_client_factory(_asset_handler))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def generator():
    service = FakeGenerationService()
    configure_generation_service(service)
    return service


def _import(client, *rows):
    text = "\n".join([_row("Name", "Prompt")] + list(rows))
    response = client.post(
        "/api/batches/import",
        files={"file": ("jobs.csv", text.encode("utf-8"), "text/csv")},
    )
    assert response.status_code == 200
    return response.json()["items"]


def test_end_to_end_workflow(client, generator):
    # 1. import the job sheet
    items = _import(
        client,
        _row("Sunset Cat", "retro colours", refs=("https://img.example.com/ok.png", "https://img.example.com/gone.png")),
        _row(""),
        _row("Space Dog"),
    )
    assert [item["name"] for item in items] == ["Sunset Cat", "Space Dog"]
    cat_id = items[0]["id"]
    assert len(items[0]["references"]) == 5
    assert items[0]["references"][0]["source_url"] == "https://img.example.com/ok.png"
    assert items[0]["references"][1] is None
    assert items[0]["status"] == "idle"

    # 2. generate two standard outputs for one batch
    response = client.post(f"/api/batches/{cat_id}/generate", json={"tier": "standard", "outputs_per_batch": 2})
    assert response.status_code == 200
    batch = response.json()
    assert batch["status"] == "completed"
    assert len(batch["results"]["standard"]) == 2
    assert batch["results"]["enhanced"] == []

    # 3. open an edit session on the secondary result and regenerate it
    response = client.post("/api/edits", json={"batch_id": cat_id, "tier": "standard", "index": 1})
    assert response.status_code == 200
    session = response.json()
    assert session["image"] == batch["results"]["standard"][1]

    response = client.post(f"/api/edits/{session['id']}/regenerate", json={"instruction": "make it red"})
    assert response.status_code == 200
    regenerated = response.json()
    assert regenerated["can_undo"] is True
    assert generator.calls[-1]["conditioning_asset"] == session["image"]

    # 4. undo restores the previous output in the batch immediately
    response = client.post(f"/api/edits/{session['id']}/undo")
    assert response.json()["image"] == session["image"]
    assert client.get(f"/api/batches/{cat_id}").json()["results"]["standard"][1] == session["image"]

    response = client.post(f"/api/edits/{session['id']}/redo")
    assert response.json()["image"] == regenerated["image"]

    # 5. apply to all
    response = client.post(f"/api/edits/{session['id']}/commit", json={"apply_to_all": True})
    assert response.status_code == 200
    standard = client.get(f"/api/batches/{cat_id}").json()["results"]["standard"]
    assert standard == [regenerated["image"]] * 2

    # 6. download the displayed asset rotated
    response = client.get(f"/api/edits/{session['id']}/download", params={"rotation": 90})
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert 'filename="Sunset Cat.png"' in response.headers["content-disposition"]

    # 7. close the session
    assert client.delete(f"/api/edits/{session['id']}").status_code == 200
    assert client.get(f"/api/edits/{session['id']}").status_code == 404

    # 8. export the archive
    response = client.get("/api/export")
    assert response.status_code == 200
    with zipfile.ZipFile(BytesIO(response.content)) as archive:
        names = archive.namelist()
    assert "Sunset Cat/Standard/Sunset Cat Standard 1.png" in names
    assert not any(name.startswith("Space Dog") for name in names)


def test_run_all_generates_every_batch(client, generator):
    _import(client, _row("One"), _row("Two"))

    response = client.post("/api/batches/generate", json={"tier": "standard", "outputs_per_batch": 1})

    assert response.status_code == 200
    assert [item["status"] for item in response.json()["items"]] == ["completed", "completed"]
    assert len(generator.calls) == 2


def test_failed_run_is_reported_on_the_batch(client):
    configure_generation_service(FakeGenerationService(fail_on=2))
    (item,) = _import(client, _row("Fragile"))

    response = client.post(f"/api/batches/{item['id']}/generate", json={"outputs_per_batch": 3})

    body = response.json()
    assert body["status"] == "error"
    assert body["error"] == "call 2 failed"
    assert body["results"]["standard"] == []


def test_enhanced_access_request_and_grant(client):
    granted = []
    configure_access_broker(ElevatedAccessBroker(granted.append))
    configure_generation_service(FakeGenerationService(fail_on=1, error=ElevatedAccessRequired("PRO_KEY_REQUIRED")))
    (item,) = _import(client, _row("Premium"))

    response = client.post(f"/api/batches/{item['id']}/generate", json={"tier": "enhanced"})
    assert response.json()["status"] == "error"

    status = client.get("/api/access").json()
    assert status["pending"] is True
    assert status["granted"] is False

    response = client.post("/api/access/grant", json={"api_key": "pro-key"})
    assert response.status_code == 200
    assert response.json()["granted"] is True
    assert granted == ["pro-key"]


def test_workbook_import(client):
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Name"] + [f"col {n}" for n in range(1, 20)])
    row = ["From Excel"] + [""] * 19
    row[11] = "excel prompt"
    sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)

    response = client.post(
        "/api/batches/import",
        files={
            "file": (
                "jobs.xlsx",
                buffer.getvalue(),
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )
        },
    )

    assert response.status_code == 200
    (item,) = response.json()["items"]
    assert item["name"] == "From Excel"
    assert item["custom_prompt"] == "excel prompt"


def test_error_responses(client):
    assert client.post("/api/batches/sync", json={"sheet_url": "https://example.com"}).status_code == 400
    assert client.get("/api/batches/missing").status_code == 404
    assert client.post("/api/batches/missing/generate", json={}).status_code == 404
    assert client.post("/api/batches/generate", json={"outputs_per_batch": 11}).status_code == 422
    assert client.post("/api/edits", json={"batch_id": "missing", "tier": "standard"}).status_code == 404
    assert client.get("/api/export").status_code == 404
    assert client.post("/api/batches/stop").json() == {"stopping": False}


def test_edit_on_missing_result_slot(client):
    (item,) = _import(client, _row("Empty"))
    response = client.post("/api/edits", json={"batch_id": item["id"], "tier": "enhanced", "index": 0})
    assert response.status_code == 404


def test_edit_routes_answer_conflict_while_batch_generates(client, generator):
    (item,) = _import(client, _row("Busy"))
    client.post(f"/api/batches/{item['id']}/generate", json={"outputs_per_batch": 1})
    session = client.post("/api/edits", json={"batch_id": item["id"], "tier": "standard", "index": 0}).json()
    get_batch_service().get_batch(item["id"]).status = BatchStatus.PROCESSING

    opened = client.post("/api/edits", json={"batch_id": item["id"], "tier": "standard", "index": 0})
    regenerated = client.post(f"/api/edits/{session['id']}/regenerate", json={"instruction": "again"})

    assert opened.status_code == 409
    assert regenerated.status_code == 409
    assert len(generator.calls) == 1
