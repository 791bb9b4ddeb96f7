import asyncio
import json
import os
import sys

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure project root on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from codebin import workspace
from codebin.app import create_app
from codebin.config import Settings


class CannedRunner:
    def __init__(self, stdout):
        self.stdout = stdout

    async def __call__(self, command, cwd=None, input_text=None, timeout=None, ok_returncodes=(0,)):
        return self.stdout


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=str(tmp_path / "snippets.db"), tool_timeout=60)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def test_snippet_round_trip(client):
    r = client.post("/snippets", json={"content": "x", "language": "python"})
    assert r.status_code == 201
    sid = r.json()["id"]
    assert isinstance(sid, str) and len(sid) == 7
    r = client.get(f"/snippets/{sid}")
    assert r.status_code == 200
    body = r.json()
    assert body["content"] == "x" and body["language"] == "python"
    assert body["uniqueId"] == sid
    assert body["createdAt"] and body["updatedAt"]


def test_snippet_routes_under_api_prefix(client):
    r = client.post("/api/snippets", json={"content": "<p>hi</p>", "language": "html"})
    assert r.status_code == 201
    r = client.get(f"/api/snippets/{r.json()['id']}")
    assert r.status_code == 200 and r.json()["content"] == "<p>hi</p>"


def test_snippet_language_defaults_to_plaintext(client):
    sid = client.post("/snippets", json={"content": "notes"}).json()["id"]
    assert client.get(f"/snippets/{sid}").json()["language"] == "plaintext"


def test_snippet_ids_are_unique(client):
    ids = {client.post("/snippets", json={"content": f"c{i}"}).json()["id"] for i in range(20)}
    assert len(ids) == 20


def test_snippet_requires_content(client):
    r = client.post("/snippets", json={"content": "", "language": "python"})
    assert r.status_code == 400
    assert r.json() == {"message": "Content cannot be empty."}


def test_snippet_not_found(client):
    r = client.get("/snippets/nope123")
    assert r.status_code == 404
    assert r.json() == {"message": "Snippet not found."}


def test_snippets_survive_restart(settings):
    with TestClient(create_app(settings)) as c:
        sid = c.post("/snippets", json={"content": "keep", "language": "css"}).json()["id"]
    with TestClient(create_app(settings)) as c:
        assert c.get(f"/snippets/{sid}").json()["content"] == "keep"


@pytest.mark.parametrize("payload", [
    {"code": "", "language": "python"},
    {"code": "print(1)", "language": ""},
    {"language": "python"},
    {"code": "print(1)"},
])
def test_analyze_requires_code_and_language(client, payload):
    r = client.post("/analyze/code", json=payload)
    assert r.status_code == 400
    assert r.json() == {"error": "Code and language are required."}


def test_analyze_rejects_malformed_body(client):
    r = client.post("/analyze/code", json={"code": ["not", "text"], "language": "python"})
    assert r.status_code == 400
    assert "error" in r.json()


def test_analyze_unknown_language_is_empty(client):
    r = client.post("/analyze/code", json={"code": "hello", "language": "plaintext"})
    assert r.status_code == 200
    assert r.json() == []


def test_analyze_python_syntax_error(client):
    r = client.post("/api/analyze/code", json={"code": "def f(:\n    pass\n", "language": "python"})
    assert r.status_code == 200
    body = r.json()
    assert len(body) == 1
    assert body[0]["severity"] == "error" and body[0]["line"] == 1 and body[0]["column"] == 1
    assert set(body[0]) == {"line", "column", "message", "severity"}


def test_analyze_javascript_through_api(settings):
    report = [{"filePath": "snippet.js", "messages": [
        {"ruleId": "no-undef", "severity": 2, "message": "'undefinedVar' is not defined.", "line": 1, "column": 1},
    ]}]
    app = create_app(settings, runner=CannedRunner(json.dumps(report)))
    with TestClient(app) as c:
        r = c.post("/analyze/code", json={"code": "undefinedVar", "language": "javascript"})
    assert r.status_code == 200
    assert r.json() == [{"line": 1, "column": 1, "message": "'undefinedVar' is not defined.", "severity": "error"}]


def test_analyze_unexpected_failure_is_500(client, monkeypatch):
    def broken(language):
        raise OSError("disk full")

    monkeypatch.setattr(workspace, "acquire", broken)
    r = client.post("/analyze/code", json={"code": "x = 1", "language": "python"})
    assert r.status_code == 500
    assert r.json() == [{
        "line": 1,
        "column": 1,
        "message": "Server error during python analysis: disk full",
        "severity": "error",
    }]


def test_status_reports_languages(client):
    body = client.get("/api/status").json()
    assert sorted(body["languages"]) == ["css", "html", "java", "javascript", "python"]
    assert set(body["tools"]) == {"eslint", "html-validate", "stylelint", "javac"}
    assert body["tool_timeout"] == 60


def test_concurrent_analyses(settings):
    app = create_app(settings)
    codes = ["def f(:\n", "x = 1\n", "def g(:\n", "y = 2\n"]

    async def run_all():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            tasks = [ac.post("/analyze/code", json={"code": c, "language": "python"}) for c in codes]
            return await asyncio.gather(*tasks)

    # TestClient runs startup so app.state.context exists
    with TestClient(app):
        responses = asyncio.run(run_all())
    assert all(r.status_code == 200 for r in responses)
    bodies = [r.json() for r in responses]
    assert len(bodies[0]) == 1 and bodies[0][0]["severity"] == "error"
    assert len(bodies[2]) == 1 and bodies[2][0]["severity"] == "error"
    for body in (bodies[1], bodies[3]):
        assert all(d["severity"] == "warning" for d in body)
