import json
import logging
import os

from conftest import FakeMediaTools, touch, write_json
from sign_ingest.index.store import IndexStore, JsonFileStorage, MemoryStorage
from sign_ingest.index.verify import verify_index
from sign_ingest.pipeline import runner
from sign_ingest.pipeline.runner import main, run_ingest


def _wlasl(config, data):
    write_json(os.path.join(config.dataset_root, "word2motion", "text", "WLASL_v0.3.json"), data)


def _video(config, *parts):
    return touch(os.path.join(config.dataset_root, "word2motion", "videos", *parts))


def _load(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def test_wlasl_annotation_reaches_index(config, fake_tools) -> None:
    _wlasl(config, [{"gloss": "HELLO", "instances": [{"video_id": "v1"}]}])
    _video(config, "v1.mp4")

    stats = run_ingest(config, tools=fake_tools, show_progress=False)

    index = _load(config.index_path)
    assert stats.processed == 1
    assert index["ASL"]["HELLO"]["metadata"]["videoId"] == "v1"
    assert index["_meta"]["totalSigns"] == 1
    assert index["_meta"]["dialects"] == {"ASL": 1}
    assert index["_meta"]["sources"] == {"word2motion": 1}


def test_rerun_is_idempotent(config) -> None:
    _wlasl(config, [{"gloss": "hello", "instances": [{"video_id": "v1"}]}])
    _video(config, "v1.mp4")
    _video(config, "bsl", "sign_GOODBYE_v2_720p.mp4")
    touch(os.path.join(config.raw_root, "thanks.mov"))

    first_tools = FakeMediaTools()
    run_ingest(config, tools=first_tools, show_progress=False)
    with open(config.index_path, "rb") as f:
        first_bytes = f.read()

    second_tools = FakeMediaTools()
    stats = run_ingest(config, tools=second_tools, show_progress=False)
    with open(config.index_path, "rb") as f:
        second_bytes = f.read()

    assert len(first_tools.calls) == 9
    assert second_tools.calls == []
    assert stats.skipped == 3
    assert second_bytes == first_bytes


def test_every_indexed_entry_resolves_to_existing_files(config, fake_tools) -> None:
    _video(config, "hello.mp4")
    _video(config, "gsl", "danke.mp4")
    touch(os.path.join(config.raw_root, "bsl", "tea.webm"))

    run_ingest(config.with_options(generate_all_qualities=True), tools=fake_tools, show_progress=False)

    store = IndexStore(JsonFileStorage(config.index_path))
    store.load()
    report = verify_index(store, config.processed_root, config.thumbnail_root)
    assert report.ok, report.issues
    assert report.dialect_counts == {"ASL": 1, "GSL": 1, "BSL": 1}
    assert report.video_files["GSL"] == 3
    assert report.thumbnail_files == 3


def test_failed_clip_gets_no_entry_and_batch_continues(config) -> None:
    _video(config, "bad.mp4")
    _video(config, "good.mp4")
    tools = FakeMediaTools(fail_transcode=lambda path, preset: os.path.basename(path) == "bad.mp4")
    storage = MemoryStorage()

    stats = run_ingest(config, tools=tools, storage=storage, show_progress=False)

    index = storage.load()
    assert (stats.processed, stats.failed) == (1, 1)
    assert "BAD" not in index["ASL"]
    assert "GOOD" in index["ASL"]


def test_collision_later_clip_overwrites(config, fake_tools) -> None:
    _wlasl(config, [{"gloss": "hello", "instances": [{"video_id": "a1"}, {"video_id": "b2"}]}])
    _video(config, "a1.mp4")
    _video(config, "b2.mp4")
    storage = MemoryStorage()

    run_ingest(config.with_options(skip_existing=False), tools=fake_tools, storage=storage,
               show_progress=False)

    assert storage.load()["ASL"]["HELLO"]["metadata"]["videoId"] == "b2"


def test_rebuild_ignores_prior_index(config, fake_tools) -> None:
    storage = MemoryStorage({"ASL": {"OLD": {"videoPath": "/gone.mp4"}}, "_meta": {}})
    _video(config, "new.mp4")

    run_ingest(config.with_options(rebuild_index=True), tools=fake_tools, storage=storage,
               show_progress=False)

    assert list(storage.load()["ASL"]) == ["NEW"]


def test_seeded_index_is_extended(config, fake_tools) -> None:
    storage = MemoryStorage({"ASL": {"OLD": {"videoPath": "/old.mp4"}}})
    _video(config, "new.mp4")

    run_ingest(config, tools=fake_tools, storage=storage, show_progress=False)

    index = storage.load()
    assert sorted(index["ASL"]) == ["NEW", "OLD"]
    assert index["_meta"]["totalSigns"] == 2


def test_missing_transcoder_aborts_before_scanning(config, monkeypatch, caplog) -> None:
    def fail(*args, **kwargs):
        raise AssertionError("must not run")

    monkeypatch.setattr(runner, "load_annotations", fail)
    monkeypatch.setattr(runner, "DatasetScanner", fail)
    _video(config, "hello.mp4")
    storage = MemoryStorage()

    with caplog.at_level(logging.ERROR):
        code = main(config, tools=FakeMediaTools(missing=("ffmpeg",)), storage=storage,
                    show_progress=False)

    assert code == 1
    assert "FFmpeg not found" in caplog.text
    assert "ffmpeg" in caplog.text
    assert storage.saves == 0


def test_main_returns_zero_on_success(config, fake_tools) -> None:
    _video(config, "hello.mp4")
    assert main(config, tools=fake_tools, storage=MemoryStorage(), show_progress=False) == 0


def test_no_videos_writes_nothing(config, fake_tools) -> None:
    storage = MemoryStorage()
    stats = run_ingest(config, tools=fake_tools, storage=storage, show_progress=False)
    assert stats.total == 0
    assert storage.saves == 0


def test_rerun_after_interrupt_transcodes_again(config) -> None:
    _video(config, "hello.mp4")
    interrupted = FakeMediaTools(fail_transcode=lambda path, preset: KeyboardInterrupt())

    first = run_ingest(config, tools=interrupted, show_progress=False)

    assert first.interrupted
    output = os.path.join(config.processed_root, "asl", "HELLO_720p.mp4")
    assert not os.path.exists(output)

    tools = FakeMediaTools()
    second = run_ingest(config, tools=tools, show_progress=False)

    assert second.processed == 1
    assert ("transcode", os.path.join(config.dataset_root, "word2motion", "videos", "hello.mp4")) in tools.calls
    assert _load(config.index_path)["ASL"]["HELLO"]["videoPath"] == output
