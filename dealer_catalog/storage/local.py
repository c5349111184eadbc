import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class LocalStorage:
    """Stores artifacts beneath a directory on local disk."""

    def __init__(self, root: str, base_url: str = "/media"):
        self.root = os.path.abspath(root)
        self.base_url = base_url.rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    def _resolve(self, path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, path))
        if os.path.commonpath([self.root, full]) != self.root or full == self.root:
            raise ValueError(f"Storage path escapes root: {path!r}")
        return full

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def put(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        full = self._resolve(path)
        directory = os.path.dirname(full)
        os.makedirs(directory, exist_ok=True)

        # Write to a sibling temp file, then rename, so readers never see a partial file
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, full)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return self.url_for(path)

    def delete(self, path: str) -> None:
        full = self._resolve(path)
        try:
            os.unlink(full)
        except FileNotFoundError:
            logger.warning(f"[STORAGE] Artifact already absent: {path}")

    def exists(self, path: str) -> bool:
        return os.path.isfile(self._resolve(path))
