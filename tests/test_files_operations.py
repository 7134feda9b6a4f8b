import os

import pytest

from refpack.download import files
from refpack.exceptions import DeliveryError


class TestAtomicWrite:
    def test_atomic_write_bytes(self, tmp_path):
        target = tmp_path / "body.json"
        assert files.atomic_write_bytes(target, b"[]") is True
        assert target.read_bytes() == b"[]"

    def test_atomic_write_text_overwrites(self, tmp_path):
        target = tmp_path / "etag"
        target.write_text("old", encoding="utf-8")
        assert files.atomic_write_text(target, "new") is True
        assert target.read_text(encoding="utf-8") == "new"

    def test_no_temp_files_left_behind(self, tmp_path):
        files.atomic_write_bytes(tmp_path / "a", b"1")
        assert sorted(os.listdir(tmp_path)) == ["a"]

    def test_replace_failure_returns_false(self, tmp_path, mocker):
        mocker.patch("refpack.download.files.os.replace", side_effect=OSError("denied"))
        target = tmp_path / "a"
        assert files.atomic_write_bytes(target, b"1") is False
        assert not target.exists()
        assert os.listdir(tmp_path) == []

    def test_missing_directory_returns_false(self, tmp_path):
        assert files.atomic_write_bytes(tmp_path / "missing" / "a", b"1") is False


class TestRemoveFile:
    def test_removes_existing(self, tmp_path):
        target = tmp_path / "x"
        target.write_bytes(b"x")
        assert files.remove_file(target) is True
        assert not target.exists()

    def test_missing_is_success(self, tmp_path):
        assert files.remove_file(tmp_path / "missing") is True

    def test_failure(self, tmp_path, mocker):
        mocker.patch("refpack.download.files.os.remove", side_effect=PermissionError("no"))
        assert files.remove_file(tmp_path / "x") is False


class TestPlace:
    def test_copies_bytes(self, tmp_path):
        source = tmp_path / "a.zip"
        source.write_bytes(b"zipdata")
        dest = tmp_path / "out" / "a.zip"
        dest.parent.mkdir()

        assert files.place(source, dest) is True
        assert dest.read_bytes() == b"zipdata"
        assert source.exists()

    def test_overwrites_existing(self, tmp_path):
        source = tmp_path / "a.zip"
        source.write_bytes(b"new")
        dest = tmp_path / "b.zip"
        dest.write_bytes(b"old-and-longer")

        files.place(source, dest)
        assert dest.read_bytes() == b"new"

    def test_same_path_is_noop(self, tmp_path, mocker):
        source = tmp_path / "a.zip"
        source.write_bytes(b"data")
        copy = mocker.patch("refpack.download.files.shutil.copyfile")

        assert files.place(source, tmp_path / "." / "a.zip") is False
        copy.assert_not_called()
        assert source.read_bytes() == b"data"

    def test_copy_failure_raises_delivery_error(self, tmp_path):
        source = tmp_path / "a.zip"
        source.write_bytes(b"data")
        dest = tmp_path / "missing-dir" / "a.zip"

        with pytest.raises(DeliveryError) as exc_info:
            files.place(source, dest)
        assert exc_info.value.path == str(dest)
        assert exc_info.value.stage == "delivery"
