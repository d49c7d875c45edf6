import json

from mediascribe.adapters.local.json_media_store import JsonMediaStore
from mediascribe.domain.models import TranscriptSegment, TranscriptVersion
from mediascribe.mappers import blob_to_version, version_to_blob


def make_version(text="hello"):
    return TranscriptVersion.create("fake-asr-base", [TranscriptSegment(0.5, 1.75, text)])


def test_version_blob_field_names():
    version = make_version()

    blob = json.loads(version_to_blob(version))

    assert set(blob) == {"id", "model", "created", "segments"}
    assert blob["segments"] == [{"start": 0.5, "end": 1.75, "text": "hello"}]


def test_blob_round_trip_keeps_timezone():
    version = make_version()

    restored = blob_to_version(version_to_blob(version))

    assert restored == version
    assert restored.created.tzinfo is not None


def test_store_persists_records_across_instances(tmp_path):
    index = tmp_path / "data" / "index.json"
    store = JsonMediaStore(str(index))
    record = store.get_or_create("/media/a.mp4")
    record.add_version(make_version("first"))
    record.add_version(make_version("second"))
    store.save(record)

    reopened = JsonMediaStore(str(index))
    loaded = reopened.get("/media/a.mp4")

    assert loaded.id == record.id
    assert [v.id for v in loaded.versions] == [v.id for v in record.versions]
    assert loaded.preview == "second"
    assert reopened.get("/media/unknown.mp4") is None


def test_unsaved_records_stay_out_of_the_index(tmp_path):
    index = tmp_path / "index.json"
    store = JsonMediaStore(str(index))
    store.get_or_create("/media/broken.mp4")
    ok = store.get_or_create("/media/ok.mp4")
    store.save(ok)

    assert store.get("/media/broken.mp4") is None
    assert [r.path for r in store.all()] == ["/media/ok.mp4"]
    assert [r["path"] for r in json.loads(index.read_text())["records"]] == ["/media/ok.mp4"]
    assert store.get_or_create("/media/ok.mp4") is ok


def test_corrupt_index_starts_empty(tmp_path):
    index = tmp_path / "index.json"
    index.write_text("{not json")

    store = JsonMediaStore(str(index))

    assert store.all() == []


def test_save_leaves_no_temp_files(tmp_path):
    store = JsonMediaStore(str(tmp_path / "index.json"))
    store.save(store.get_or_create("/media/a.mp4"))

    assert sorted(p.name for p in tmp_path.iterdir()) == ["index.json"]
