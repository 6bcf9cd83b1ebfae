"""Tests for folder expansion."""
from gallery_uploader.orchestrator.file_collector import FileCollector, is_media


def test_is_media(tmp_path):
    assert is_media(tmp_path / "a.jpg") is True
    assert is_media(tmp_path / "memo.mp3") is True
    assert is_media(tmp_path / "notes.txt") is False
    assert is_media(tmp_path / "README") is False


def test_collect_files(tmp_path):
    (tmp_path / "b.jpg").write_bytes(b"b")
    (tmp_path / "a.png").write_bytes(b"a")
    (tmp_path / "notes.txt").write_text("not media")
    (tmp_path / "speeches").mkdir()
    (tmp_path / "speeches" / "toast.mp3").write_bytes(b"t")
    (tmp_path / ".thumbnails").mkdir()
    (tmp_path / ".thumbnails" / "c.jpg").write_bytes(b"c")
    (tmp_path / ".hidden.jpg").write_bytes(b"h")

    files = FileCollector.collect_files(tmp_path)

    assert [f.relative_to(tmp_path).as_posix() for f in files] == [
        "a.png",
        "b.jpg",
        "speeches/toast.mp3",
    ]


def test_expand_keeps_order(tmp_path):
    single = tmp_path / "z.jpg"
    single.write_bytes(b"z")
    folder = tmp_path / "album"
    folder.mkdir()
    (folder / "a.jpg").write_bytes(b"a")

    assert FileCollector.expand([single, folder]) == [single, folder / "a.jpg"]
