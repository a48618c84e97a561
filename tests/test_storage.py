from unittest.mock import MagicMock

import pytest

from machine_health.config import Settings
from machine_health.exceptions import ArtifactStoreError, ValidationError
from machine_health.storage import (
    InMemoryArtifactStore,
    LocalArtifactStore,
    SupabaseArtifactStore,
    build_artifact_path,
    build_artifact_store,
    check_user_id,
    safe_filename,
)


class TestArtifactPath:
    def test_format(self):
        assert build_artifact_path("user-1", "pump.wav", epoch_millis=1709110920000) == "user-1/1709110920000_pump.wav"

    def test_directory_components_are_dropped(self):
        assert safe_filename("../../etc/passwd") == "passwd"
        assert safe_filename("C:\\recordings\\fan.flac") == "fan.flac"
        assert safe_filename("") == "audio"
        assert safe_filename(None) == "audio"

    def test_paths_are_unique_for_back_to_back_calls(self):
        paths = {build_artifact_path("u1", "same.wav") for _ in range(500)}
        assert len(paths) == 500

    @pytest.mark.parametrize("user_id", ["alice/x", "alice\\x", "..", "."])
    def test_user_id_must_be_one_segment(self, user_id):
        with pytest.raises(ValidationError):
            build_artifact_path(user_id, "pump.wav")

    def test_plain_user_ids_pass(self):
        assert check_user_id("user-1") == "user-1"
        assert check_user_id("a..b") == "a..b"


class TestInMemoryStore:
    def test_put_and_get(self):
        store = InMemoryArtifactStore()
        store.put("u1/1_a.wav", b"abc", "audio/wav")
        assert store.exists("u1/1_a.wav")
        assert store.get("u1/1_a.wav") == b"abc"
        assert store.content_types["u1/1_a.wav"] == "audio/wav"

    def test_refuses_overwrite(self):
        store = InMemoryArtifactStore()
        store.put("u1/1_a.wav", b"abc", "audio/wav")
        with pytest.raises(ArtifactStoreError):
            store.put("u1/1_a.wav", b"xyz", "audio/wav")
        assert store.get("u1/1_a.wav") == b"abc"


class TestLocalStore:
    def test_writes_under_root(self, tmp_path):
        store = LocalArtifactStore(str(tmp_path))
        store.put("u1/1_a.wav", b"abc", "audio/wav")
        assert (tmp_path / "u1" / "1_a.wav").read_bytes() == b"abc"
        assert store.exists("u1/1_a.wav")
        assert not store.exists("u1/2_b.wav")

    def test_refuses_overwrite(self, tmp_path):
        store = LocalArtifactStore(str(tmp_path))
        store.put("u1/1_a.wav", b"abc", "audio/wav")
        with pytest.raises(ArtifactStoreError):
            store.put("u1/1_a.wav", b"xyz", "audio/wav")

    def test_rejects_paths_outside_root(self, tmp_path):
        store = LocalArtifactStore(str(tmp_path / "store"))
        with pytest.raises(ArtifactStoreError):
            store.put("../escape.wav", b"abc", "audio/wav")


class TestSupabaseStore:
    def test_put_uploads_to_bucket(self):
        client = MagicMock()
        store = SupabaseArtifactStore(client, "audio-uploads")
        store.put("u1/1_a.wav", b"abc", "audio/wav")
        client.storage.from_.assert_called_with("audio-uploads")
        client.storage.from_.return_value.upload.assert_called_once_with(
            "u1/1_a.wav", b"abc", {"content-type": "audio/wav"}
        )

    def test_upload_failure_becomes_artifact_store_error(self):
        client = MagicMock()
        client.storage.from_.return_value.upload.side_effect = RuntimeError("bucket not found")
        store = SupabaseArtifactStore(client, "audio-uploads")
        with pytest.raises(ArtifactStoreError, match="bucket not found"):
            store.put("u1/1_a.wav", b"abc", "audio/wav")

    def test_exists_lists_folder(self):
        client = MagicMock()
        client.storage.from_.return_value.list.return_value = [{"name": "1_a.wav"}]
        store = SupabaseArtifactStore(client, "audio-uploads")
        assert store.exists("u1/1_a.wav")
        client.storage.from_.return_value.list.assert_called_with("u1", {"search": "1_a.wav"})
        assert not store.exists("u1/2_b.wav")

    def test_from_settings_requires_credentials(self):
        with pytest.raises(ValueError):
            SupabaseArtifactStore.from_settings(Settings(artifact_backend="supabase"))


def test_build_artifact_store_backends(tmp_path):
    assert isinstance(build_artifact_store(Settings(artifact_backend="memory")), InMemoryArtifactStore)
    local = build_artifact_store(Settings(artifact_backend="local", artifact_dir=str(tmp_path)))
    assert isinstance(local, LocalArtifactStore)
    with pytest.raises(ValueError):
        build_artifact_store(Settings(artifact_backend="s3"))
