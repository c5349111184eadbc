import os

import pytest

from dealer_catalog.storage import LocalStorage, StorageBackend


class TestLocalStorage:
    def test_put_returns_public_url(self, tmp_path):
        storage = LocalStorage(str(tmp_path), "/media/")

        url = storage.put("images/a.jpg", b"abc")

        assert url == "/media/images/a.jpg"
        assert (tmp_path / "images" / "a.jpg").read_bytes() == b"abc"
        assert storage.exists("images/a.jpg")

    def test_put_overwrites_without_leftovers(self, tmp_path):
        storage = LocalStorage(str(tmp_path))

        storage.put("images/a.jpg", b"first")
        storage.put("images/a.jpg", b"second")

        assert (tmp_path / "images" / "a.jpg").read_bytes() == b"second"
        assert os.listdir(tmp_path / "images") == ["a.jpg"]

    def test_delete(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        storage.put("thumbnails/thumb_a.jpg", b"x")

        storage.delete("thumbnails/thumb_a.jpg")

        assert not storage.exists("thumbnails/thumb_a.jpg")

    def test_delete_of_absent_artifact_is_quiet(self, tmp_path):
        storage = LocalStorage(str(tmp_path))

        storage.delete("images/never-written.jpg")

    @pytest.mark.parametrize("path", ["../escape.jpg", "images/../../escape.jpg", "/etc/passwd", "."])
    def test_paths_outside_root_are_rejected(self, tmp_path, path):
        storage = LocalStorage(str(tmp_path / "media"))

        with pytest.raises(ValueError):
            storage.put(path, b"x")

    def test_satisfies_backend_protocol(self, tmp_path):
        assert isinstance(LocalStorage(str(tmp_path)), StorageBackend)
