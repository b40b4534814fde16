"""Content store tests."""

from archiver.storage import ContentStore

FP = "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3"


def test_sharded_layout(tmp_path):
    store = ContentStore(tmp_path / "media")
    assert store.path_for(FP, ".webm") == tmp_path / "media" / "a9" / "4a" / "8f" / f"{FP}.webm"
    assert store.thumb_path_for(FP) == tmp_path / "media" / "a9" / "4a" / "8f" / f"{FP}s.jpg"


def test_uppercase_fingerprint_maps_to_same_path(tmp_path):
    store = ContentStore(tmp_path)
    assert store.path_for(FP.upper(), ".png") == store.path_for(FP, ".png")


def test_store_is_write_once(tmp_path):
    store = ContentStore(tmp_path)
    assert store.store(FP, ".png", b"first") is True
    assert store.store(FP, ".png", b"second") is False
    assert store.path_for(FP, ".png").read_bytes() == b"first"
    assert store.exists(FP)
    assert store.find(FP) == store.path_for(FP, ".png")


def test_no_temp_files_left_behind(tmp_path):
    store = ContentStore(tmp_path)
    store.store(FP, ".png", b"data")
    store.store_thumbnail(FP, b"thumb")
    names = sorted(p.name for p in store.shard_dir(FP).iterdir())
    assert names == [f"{FP}.png", f"{FP}s.jpg"]


def test_thumbnail_is_write_once(tmp_path):
    store = ContentStore(tmp_path)
    assert store.store_thumbnail(FP, b"one") is True
    assert store.store_thumbnail(FP, b"two") is False
    assert store.thumb_path_for(FP).read_bytes() == b"one"


def test_other_container_is_not_stored_again(tmp_path):
    store = ContentStore(tmp_path)
    store.store(FP, ".webm", b"webm")
    assert store.store(FP, ".mp4", b"mp4") is False
    assert not store.path_for(FP, ".mp4").exists()
    assert store.find(FP) == store.path_for(FP, ".webm")


def test_find_ignores_thumbnail_and_temp_files(tmp_path):
    store = ContentStore(tmp_path)
    assert store.find(FP) is None
    store.store_thumbnail(FP, b"thumb")
    (store.shard_dir(FP) / ".tmp123.part").write_bytes(b"partial")
    assert store.find(FP) is None
    assert not store.exists(FP)


def test_thumbnail_written_only_for_new_file(tmp_path):
    store = ContentStore(tmp_path)
    calls = []

    def thumb():
        calls.append(1)
        return b"thumb"

    assert store.store(FP, ".webm", b"one", thumbnail=thumb) is True
    assert store.store(FP, ".mp4", b"two", thumbnail=thumb) is False
    assert calls == [1]
    assert store.thumb_path_for(FP).read_bytes() == b"thumb"


def test_missing_thumbnail_still_stores_file(tmp_path):
    store = ContentStore(tmp_path)
    assert store.store(FP, ".png", b"data", thumbnail=lambda: None) is True
    assert store.path_for(FP, ".png").exists()
    assert not store.thumb_path_for(FP).exists()
