import json
import time
from typing import List

import pytest
from fastapi.testclient import TestClient

from annotated_reader.articles import AnalysisError, AnalysisRequest, AnalysisService, ParsingQueueWorker, Sentence

from api import dependencies
from api.app import create_app


class EchoAnalysisService(AnalysisService):
    async def analyze(self, request: AnalysisRequest) -> List[Sentence]:
        if "fail" in request.text:
            raise AnalysisError("service unavailable")
        return [Sentence(id=f"{request.id}_0", original=request.text, blocks=[], translation="echo")]


@pytest.fixture
def storage_root(tmp_path, monkeypatch):
    monkeypatch.setenv("READER_STORAGE_ROOT", str(tmp_path))
    monkeypatch.setenv("SAVE_DEBOUNCE_MS", "20")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return tmp_path


@pytest.fixture
def client(storage_root, monkeypatch):
    dependencies.reset_dependencies()
    worker = ParsingQueueWorker(
        dependencies.get_state(),
        EchoAnalysisService(),
        dependencies.get_events(),
        dependencies.get_notifier(),
    )
    monkeypatch.setattr(dependencies, "get_worker", lambda: worker)
    with TestClient(create_app()) as test_client:
        yield test_client


def wait_for(predicate, timeout: float = 3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(0.02)
    raise AssertionError("condition not met in time")


def wait_for_status(client: TestClient, article_id: str, status: str) -> dict:
    def check():
        article = client.get(f"/articles/{article_id}").json()
        return article if article["status"] == status else None

    return wait_for(check)


def configure_key(client: TestClient) -> None:
    resp = client.put("/settings", json={"apiKey": "k", "apiUrl": "http://llm.local", "modelName": "m", "concurrency": 2})
    assert resp.status_code == 200


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_create_requires_api_key_and_text(client):
    resp = client.post("/articles", json={"content": "Hello there."})
    assert resp.status_code == 400

    configure_key(client)
    resp = client.post("/articles", json={"content": "   "})
    assert resp.status_code == 400
    assert client.get("/articles").json() == []


def test_create_parse_and_persist(client, storage_root):
    configure_key(client)
    resp = client.post("/articles", json={"title": "", "content": "Hello world. More text here", "language": "RU"})
    assert resp.status_code == 201
    created = resp.json()
    assert created["title"] == "Hello world."
    assert created["preview"] == "More text here"

    article_id = created["id"]
    done = wait_for_status(client, article_id, "done")
    assert done["parsingProgress"] == 100
    assert done["sentences"][0]["translation"] == "echo"
    wait_for(lambda: client.get("/queue").json()["queue"] == [])

    data_file = storage_root / "data.json"

    def stored_done():
        if not data_file.exists():
            return None
        data = json.loads(data_file.read_text(encoding="utf-8"))
        articles = data.get("articles") or []
        return data if articles and articles[0]["status"] == "done" else None

    stored = wait_for(stored_done)
    assert stored["settings"]["apiKey"] == "k"
    assert stored["articles"][0]["draftContent"] == "Hello world. More text here"


def test_failed_parse_raises_alert(client):
    configure_key(client)
    article_id = client.post("/articles", json={"content": "please fail."}).json()["id"]

    failed = wait_for_status(client, article_id, "error")
    assert failed["parsingProgress"] == 0
    alerts = client.get("/notifications").json()["alerts"]
    assert alerts == ["Parsing failed: service unavailable"]
    assert client.get("/notifications").json()["alerts"] == []


def test_edit_open_and_delete(client):
    configure_key(client)
    first = client.post("/articles", json={"content": "First one."}).json()["id"]
    second = client.post("/articles", json={"content": "Second one."}).json()["id"]
    wait_for(lambda: all(a["status"] == "done" for a in client.get("/articles").json()))

    draft = client.post(f"/articles/{first}/edit").json()
    assert draft["content"] == "First one."
    assert client.get("/draft").json()["content"] == "First one."

    resp = client.put(f"/articles/{first}", json={"content": "First, edited."})
    assert resp.status_code == 200
    assert [a["id"] for a in client.get("/articles").json()] == [second, first]
    wait_for_status(client, first, "done")

    assert client.post(f"/articles/{second}/open").status_code == 200
    assert client.get("/queue").json()["activeArticleId"] == second
    assert client.delete(f"/articles/{second}").status_code == 200
    state = client.get("/queue").json()
    assert state["activeArticleId"] is None
    assert state["view"] == "home"
    assert client.get(f"/articles/{second}").status_code == 404
    assert client.delete(f"/articles/{second}").status_code == 404
    assert client.put("/articles/missing", json={"content": "x."}).status_code == 404


def test_draft_roundtrip(client):
    resp = client.put("/draft", json={"title": "t", "content": "unsent text", "language": "RU"})
    assert resp.status_code == 200
    assert client.get("/draft").json() == {"title": "t", "content": "unsent text", "language": "RU"}


def test_startup_restores_saved_snapshot(storage_root, monkeypatch):
    payload = {
        "articles": [
            {
                "id": "saved",
                "title": "Saved.",
                "preview": "",
                "status": "done",
                "parsingProgress": 100,
                "sentences": [],
                "draftContent": "Saved.",
                "language": "KR",
            }
        ],
        "settings": {"apiKey": "restored", "apiUrl": "", "modelName": "", "concurrency": 1},
    }
    (storage_root / "data.json").write_text(json.dumps(payload), encoding="utf-8")
    dependencies.reset_dependencies()

    with TestClient(create_app()) as test_client:
        assert [a["id"] for a in test_client.get("/articles").json()] == ["saved"]
        assert test_client.get("/settings").json()["apiKey"] == "restored"
        assert test_client.get("/draft").json()["language"] == "KR"
