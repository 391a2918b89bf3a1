import io
import os
import time
import zipfile

import pytest

from zinxutil.rotating_writer import (
    DEFAULT_MAX_SIZE,
    RotatingWriter,
    zip_path,
    zip_to_file,
)


def _zips(directory, exclude=()):
    return sorted(
        name for name in os.listdir(directory)
        if name.endswith(".zip") and name not in exclude
    )


def test_write_and_flush(tmp_path):
    path = tmp_path / "logs" / "app.log"
    writer = RotatingWriter(path)
    try:
        assert writer.write(b"hello\n") == 6
        writer.flush()
        assert path.read_bytes() == b"hello\n"
    finally:
        writer.close()


def test_write_accepts_text(tmp_path):
    path = tmp_path / "app.log"
    with RotatingWriter(path) as writer:
        count = writer.write("line one\n")
    assert count == len(b"line one\n")
    assert path.read_bytes() == b"line one\n"


def test_appends_to_existing_file(tmp_path):
    path = tmp_path / "app.log"
    path.write_bytes(b"first\n")
    with RotatingWriter(path) as writer:
        writer.write(b"second\n")
    assert path.read_bytes() == b"first\nsecond\n"


def test_write_after_close_reopens(tmp_path):
    path = tmp_path / "app.log"
    writer = RotatingWriter(path)
    writer.write(b"a")
    writer.close()
    writer.write(b"b")
    writer.close()
    assert path.read_bytes() == b"ab"


def test_max_size_ignores_values_below_one(tmp_path):
    writer = RotatingWriter(tmp_path / "app.log")
    try:
        writer.max_size = 0
        assert writer.max_size == DEFAULT_MAX_SIZE
        writer.max_size = 100
        assert writer.max_size == 100
    finally:
        writer.close()


def test_rotates_by_size(tmp_path):
    path = tmp_path / "app.log"
    with RotatingWriter(path) as writer:
        writer.max_size = 10
        writer.write(b"12345")
        writer.write(b"67890")
    assert path.read_bytes() == b"67890"
    zips = _zips(tmp_path)
    assert len(zips) == 1
    assert zips[0].startswith("app.")
    with zipfile.ZipFile(tmp_path / zips[0]) as archive:
        names = archive.namelist()
        assert names == [zips[0][: -len(".zip")] + ".log"]
        assert archive.read(names[0]) == b"12345"
    assert not any(name.endswith(".log") and name != "app.log" for name in os.listdir(tmp_path))


def test_rotates_by_day_and_deletes_expired_archives(tmp_path):
    path = tmp_path / "app.log"
    path.write_bytes(b"old\n")
    two_days_ago = time.time() - 2 * 24 * 3600
    os.utime(path, (two_days_ago, two_days_ago))

    expired = "app.2000-01-01-000000.000000.zip"
    future = "app.2999-01-01-000000.000000.zip"
    (tmp_path / expired).write_bytes(b"x")
    (tmp_path / future).write_bytes(b"x")
    (tmp_path / "notes.txt").write_bytes(b"keep")

    with RotatingWriter(path) as writer:
        writer.write(b"new\n")

    assert path.read_bytes() == b"new\n"
    assert not (tmp_path / expired).exists()
    assert (tmp_path / future).exists()
    assert (tmp_path / "notes.txt").read_bytes() == b"keep"

    created = _zips(tmp_path, exclude=(future,))
    assert len(created) == 1
    with zipfile.ZipFile(tmp_path / created[0]) as archive:
        (name,) = archive.namelist()
        assert name.endswith(".log")
        assert archive.read(name) == b"old\n"


def test_day_rotation_keeps_archives_when_max_age_disabled(tmp_path):
    path = tmp_path / "app.log"
    path.write_bytes(b"old\n")
    two_days_ago = time.time() - 2 * 24 * 3600
    os.utime(path, (two_days_ago, two_days_ago))
    expired = "app.2000-01-01-000000.000000.zip"
    (tmp_path / expired).write_bytes(b"x")

    with RotatingWriter(path) as writer:
        writer.max_age = 0
        assert writer.max_age == 0
        assert writer.write(b"new\n") == 4

    assert path.read_bytes() == b"new\n"
    assert (tmp_path / expired).exists()
    created = _zips(tmp_path, exclude=(expired,))
    assert len(created) == 1
    with zipfile.ZipFile(tmp_path / created[0]) as archive:
        (name,) = archive.namelist()
        assert archive.read(name) == b"old\n"


def test_console_echo(tmp_path, capsys):
    with RotatingWriter(tmp_path / "app.log") as writer:
        writer.console = True
        writer.write(b"to both\n")
    assert "to both" in capsys.readouterr().err
    assert (tmp_path / "app.log").read_bytes() == b"to both\n"


def test_zip_path_directory(tmp_path):
    root = tmp_path / "pkg"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"alpha")
    (root / "sub" / "b.txt").write_bytes(b"beta")

    out = io.BytesIO()
    zip_path(out, root)

    with zipfile.ZipFile(io.BytesIO(out.getvalue())) as archive:
        assert archive.namelist() == ["pkg/", "pkg/a.txt", "pkg/sub/", "pkg/sub/b.txt"]
        assert archive.read("pkg/a.txt") == b"alpha"
        assert archive.read("pkg/sub/b.txt") == b"beta"
        assert archive.getinfo("pkg/a.txt").compress_type == zipfile.ZIP_DEFLATED


def test_zip_path_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        zip_path(io.BytesIO(), tmp_path / "missing")


def test_zip_to_file_single_file(tmp_path):
    src = tmp_path / "f.txt"
    src.write_bytes(b"content" * 100)
    dst = tmp_path / "out.zip"
    zip_to_file(dst, src)
    with zipfile.ZipFile(dst) as archive:
        assert archive.namelist() == ["f.txt"]
        assert archive.read("f.txt") == b"content" * 100
    assert src.exists()