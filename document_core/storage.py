"""Filesystem store for templates, logos and produced documents."""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from .errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    data: bytes
    mime_type: str | None = None


class LocalAssetStore:
    """Keeps assets below ``root``; keys are relative POSIX paths."""

    def __init__(self, root):
        self.root = Path(root)

    def _path(self, key):
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Asset key escapes the store: {key!r}")
        return path

    def get(self, key):
        """Return the asset stored under ``key`` or None."""
        if not key:
            return None
        path = self._path(key)
        if not path.is_file():
            logger.debug("Asset %s not found", key)
            return None
        mime_type, _ = mimetypes.guess_type(path.name)
        return Asset(data=path.read_bytes(), mime_type=mime_type)

    def put(self, key, data, content_type="application/pdf"):
        """Write ``data`` under ``key``, replacing what was there."""
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise PersistenceError(f"Could not store {key}") from exc
        logger.info("Stored %s (%s, %d bytes)", key, content_type, len(data))
        return key
