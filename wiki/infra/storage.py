import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from wiki.domain.models import BlobMeta

logger = logging.getLogger(__name__)

_META_FILE = "meta.json"
_DATA_FILE = "data"
_CHUNK = 64 * 1024


class BlobStore:
    """Binary payloads stored under an externally generated key.

    Layout: <root>/blobs/<key>/data plus a meta.json sidecar, so metadata can
    be resolved without touching the payload.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def _dir(self, key: str) -> Path:
        if not key or key in (".", "..") or "/" in key or "\\" in key:
            raise ValueError(f"invalid blob key: {key!r}")
        return self._root / "blobs" / key

    def upload(
        self,
        key: str,
        filename: str,
        source: bytes | BinaryIO,
        mime_type: str = "application/octet-stream",
    ) -> bool:
        base = self._dir(key)
        base.mkdir(parents=True, exist_ok=True)
        data_path = base / _DATA_FILE
        if isinstance(source, (bytes, bytearray)):
            data_path.write_bytes(source)
        else:
            with data_path.open("wb") as out:
                shutil.copyfileobj(source, out, _CHUNK)
        meta = {
            "id": key,
            "filename": filename,
            "mime_type": mime_type,
            "length": data_path.stat().st_size,
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
        }
        (base / _META_FILE).write_text(json.dumps(meta, ensure_ascii=False), encoding="utf-8")
        logger.debug("Stored blob %s (%s, %d bytes)", key, filename, meta["length"])
        return True

    def find_meta(self, key: str) -> BlobMeta | None:
        meta_path = self._dir(key) / _META_FILE
        if not meta_path.is_file():
            return None
        raw = json.loads(meta_path.read_text(encoding="utf-8"))
        return BlobMeta(
            id=str(raw["id"]),
            filename=str(raw["filename"]),
            mime_type=str(raw["mime_type"]),
            length=int(raw["length"]),
            uploaded_at=str(raw["uploaded_at"]),
        )

    def download(self, key: str) -> bytes | None:
        data_path = self._dir(key) / _DATA_FILE
        if not data_path.is_file():
            return None
        return data_path.read_bytes()

    def delete(self, key: str) -> bool:
        """Remove a blob. Deleting an absent key reports False."""

        base = self._dir(key)
        if not base.is_dir():
            return False
        shutil.rmtree(base)
        return True
