"""Artifact storage for uploaded audio.

Paths look like ``{user_id}/{epoch_millis}_{filename}``, which keeps every upload
unique per user without any central coordination.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Dict, Optional

from supabase import Client, create_client

from machine_health.config import Settings
from machine_health.exceptions import ArtifactStoreError, ValidationError

logger = logging.getLogger(__name__)

_millis_lock = threading.Lock()
_last_millis = 0


def _next_epoch_millis() -> int:
    """Wall-clock millis, bumped so that no two calls in this process get the same value."""
    global _last_millis
    with _millis_lock:
        now = int(time.time() * 1000)
        _last_millis = max(now, _last_millis + 1)
        return _last_millis


def safe_filename(filename: Optional[str]) -> str:
    name = PurePosixPath((filename or "").replace("\\", "/")).name.strip()
    return name or "audio"


def check_user_id(user_id: str) -> str:
    """The user id becomes the first path segment, so it must be exactly one segment."""
    if "/" in user_id or "\\" in user_id or user_id.strip() in (".", ".."):
        raise ValidationError(f"Invalid user id {user_id!r}.")
    return user_id


def build_artifact_path(user_id: str, filename: Optional[str], epoch_millis: Optional[int] = None) -> str:
    check_user_id(user_id)
    millis = _next_epoch_millis() if epoch_millis is None else epoch_millis
    return f"{user_id}/{millis}_{safe_filename(filename)}"


class ArtifactStore(ABC):
    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str) -> None:
        """Store ``data`` at ``path``. Raises ArtifactStoreError on failure."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...


class SupabaseArtifactStore(ArtifactStore):
    def __init__(self, client: Client, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseArtifactStore":
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the supabase artifact backend")
        return cls(create_client(settings.supabase_url, settings.supabase_key), settings.supabase_bucket)

    def put(self, path: str, data: bytes, content_type: str) -> None:
        try:
            self.client.storage.from_(self.bucket).upload(path, data, {"content-type": content_type})
        except Exception as e:
            raise ArtifactStoreError(f"Upload to bucket '{self.bucket}' failed: {e}") from e

    def exists(self, path: str) -> bool:
        folder, _, name = path.rpartition("/")
        try:
            entries = self.client.storage.from_(self.bucket).list(folder, {"search": name})
        except Exception as e:
            raise ArtifactStoreError(f"Listing bucket '{self.bucket}' failed: {e}") from e
        return any(entry.get("name") == name for entry in entries)


class LocalArtifactStore(ArtifactStore):
    """Filesystem store for development. Never overwrites an existing artifact."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ArtifactStoreError(f"Artifact path escapes the store root: {path}")
        return target

    def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as fh:
                fh.write(data)
        except OSError as e:
            raise ArtifactStoreError(f"Could not write artifact {path}: {e}") from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()


class InMemoryArtifactStore(ArtifactStore):
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, path: str, data: bytes, content_type: str) -> None:
        with self._lock:
            if path in self.blobs:
                raise ArtifactStoreError(f"Artifact already exists: {path}")
            self.blobs[path] = bytes(data)
            self.content_types[path] = content_type

    def exists(self, path: str) -> bool:
        return path in self.blobs

    def get(self, path: str) -> Optional[bytes]:
        return self.blobs.get(path)


def build_artifact_store(settings: Settings) -> ArtifactStore:
    backend = settings.artifact_backend
    if backend == "supabase":
        return SupabaseArtifactStore.from_settings(settings)
    if backend == "local":
        return LocalArtifactStore(settings.artifact_dir)
    if backend == "memory":
        logger.warning("Using in-memory artifact store; uploads are lost on restart")
        return InMemoryArtifactStore()
    raise ValueError(f"Unknown ARTIFACT_BACKEND: {backend!r}")
