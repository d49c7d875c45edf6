import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeEmbedder
from mediascribe.adapters.local.json_media_store import JsonMediaStore
from mediascribe.api import create_app
from mediascribe.config import get_config
from mediascribe.exceptions import ModelLoadError

A = [1.0, 0.0]
B = [0.0, 1.0]


@pytest.fixture
def embedder():
    return FakeEmbedder([A, B])


@pytest.fixture
def client(engine, embedder, decoder, store, progress):
    app = create_app(
        cfg=get_config(), engine=engine, embedding=embedder,
        audio=decoder, store=store, progress=progress,
    )
    with TestClient(app) as c:
        yield c


def test_health_after_startup(client):
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["engine_state"] == "ready"
    assert body["model"] == "fake-asr-base"
    assert body["voice_id_available"] is True


def test_transcribe_then_cached(client, store):
    first = client.post("/v1/transcripts", json={"path": "/media/a.mp4"}).json()
    second = client.post("/v1/transcripts", json={"path": "/media/a.mp4"}).json()

    assert first["status"] == "transcribed"
    assert first["preview"] == "hello there"
    assert second["status"] == "cached"
    assert second["version_id"] == first["version_id"]
    assert store.saved == ["/media/a.mp4"]


def test_list_and_delete_versions(client):
    for _ in range(2):
        client.post("/v1/transcripts", json={"path": "/media/a.mp4", "force_refresh": True})
    versions = client.get("/v1/transcripts", params={"path": "/media/a.mp4"}).json()["versions"]
    assert len(versions) == 2
    assert versions[0]["segments"][0] == {"start": 0.5, "end": 3.0, "text": " hello there"}

    resp = client.delete(f"/v1/transcripts/{versions[0]['id']}", params={"path": "/media/a.mp4"})

    assert resp.status_code == 200
    assert [v["id"] for v in resp.json()["versions"]] == [versions[1]["id"]]
    missing = client.delete(f"/v1/transcripts/{versions[0]['id']}", params={"path": "/media/a.mp4"})
    assert missing.status_code == 404


def test_unknown_path_is_404(client):
    assert client.get("/v1/transcripts", params={"path": "/media/nope.mp4"}).status_code == 404


def test_failed_decode_reports_failed_status(client, decoder):
    decoder.fail_paths.add("/media/broken.mp4")

    body = client.post("/v1/transcripts", json={"path": "/media/broken.mp4"}).json()

    assert body["status"] == "failed"
    assert body["version_id"] is None
    assert "decoder failed" in body["error"]


def test_batch_endpoint(client, decoder):
    decoder.fail_paths.add("/media/broken.mp4")

    body = client.post(
        "/v1/transcripts/batch", json={"paths": ["/media/a.mp4", "/media/broken.mp4"]},
    ).json()

    assert [i["status"] for i in body["items"]] == ["transcribed", "failed"]
    assert body["failed"] == 1


def test_voice_scan(client):
    body = client.post("/v1/voices", json={"path": "/media/a.mp4"}).json()

    assert [s["label"] for s in body["speakers"]] == ["Speaker 1", "Speaker 2"]
    assert body["speakers"][0]["segment_count"] == 1
    assert body["speakers"][0]["total_duration"] == 2.5


def test_voice_scan_rejects_bad_threshold(client):
    resp = client.post("/v1/voices", json={"path": "/media/a.mp4", "similarity_threshold": 1.5})

    assert resp.status_code == 422


def test_progress_is_drained(client):
    client.post("/v1/transcripts", json={"path": "/media/a.mp4"})

    stages = [e["stage"] for e in client.get("/v1/progress").json()]

    assert stages[0] == "converting"
    assert stages[-1] == "completed"
    assert client.get("/v1/progress").json() == []


def test_load_failure_is_reported_and_retryable(engine, transcriber, embedder, decoder, store, progress):
    transcriber.load_error = ModelLoadError("weights missing")
    app = create_app(
        cfg=get_config(), engine=engine, embedding=embedder,
        audio=decoder, store=store, progress=progress,
    )

    with TestClient(app) as client:
        health = client.get("/health").json()
        assert health["status"] == "degraded"
        assert health["load_error"] == "weights missing"
        assert client.post("/v1/transcripts", json={"path": "/media/a.mp4"}).status_code == 503
        assert client.post("/v1/engine/initialize").status_code == 503

        transcriber.load_error = None
        assert client.post("/v1/engine/initialize").json()["engine_state"] == "ready"
        assert client.post("/v1/transcripts", json={"path": "/media/a.mp4"}).status_code == 200


def test_voice_id_unavailable_is_503(engine, decoder, store, progress):
    app = create_app(
        cfg=get_config(), engine=engine, embedding=FakeEmbedder(available=False),
        audio=decoder, store=store, progress=progress,
    )

    with TestClient(app) as client:
        assert client.post("/v1/voices", json={"path": "/media/a.mp4"}).status_code == 503


def test_failed_paths_are_not_indexed(engine, embedder, decoder, progress, tmp_path):
    index = tmp_path / "index.json"
    decoder.fail_paths.add("/media/broken.mp4")
    app = create_app(
        cfg=get_config(), engine=engine, embedding=embedder,
        audio=decoder, store=JsonMediaStore(str(index)), progress=progress,
    )

    with TestClient(app) as client:
        assert client.post("/v1/transcripts", json={"path": "/media/broken.mp4"}).json()["status"] == "failed"
        assert client.post("/v1/transcripts", json={"path": "/media/ok.mp4"}).json()["status"] == "transcribed"

        assert client.get("/v1/transcripts", params={"path": "/media/broken.mp4"}).status_code == 404
        assert [m["path"] for m in client.get("/v1/media").json()] == ["/media/ok.mp4"]

    assert [r["path"] for r in json.loads(index.read_text())["records"]] == ["/media/ok.mp4"]


def test_requests_before_load_do_not_create_records(engine, transcriber, embedder, decoder, progress, tmp_path):
    transcriber.load_error = ModelLoadError("weights missing")
    store = JsonMediaStore(str(tmp_path / "index.json"))
    app = create_app(
        cfg=get_config(), engine=engine, embedding=embedder,
        audio=decoder, store=store, progress=progress,
    )

    with TestClient(app) as client:
        assert client.post("/v1/transcripts", json={"path": "/media/a.mp4"}).status_code == 503
        assert client.post("/v1/voices", json={"path": "/media/a.mp4"}).status_code == 503
        assert client.post("/v1/transcripts/batch", json={"paths": ["/media/a.mp4"]}).status_code == 503

    assert store.all() == []
    assert decoder.calls == []


def test_media_listing(client):
    client.post("/v1/transcripts", json={"path": "/media/b.mp4"})
    client.post("/v1/transcripts", json={"path": "/media/a.mp4"})
    client.post("/v1/transcripts", json={"path": "/media/a.mp4", "force_refresh": True})

    media = client.get("/v1/media").json()

    assert [(m["path"], m["version_count"]) for m in media] == [("/media/a.mp4", 2), ("/media/b.mp4", 1)]
    assert media[0]["preview"] == "hello there"
    assert media[0]["latest_version_id"] is not None
