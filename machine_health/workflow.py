"""
Analysis workflow: intake -> classification -> persistence -> result.

One ``analyze`` call performs, strictly in this order, one artifact write, one
classifier invocation and one record insert. There is no rollback: if the
classifier or the database fails after the artifact was written, the artifact
stays in the store without a record (an orphan). Nothing is retried here.

The pipeline runs as a task shielded from the caller. A caller that goes away
mid-flight does not stop the write or the classification, so an abandoned
request can still end up with a persisted record.

The artifact write, the FLAC transcode and the record insert are blocking calls;
they run in worker threads so the event loop keeps serving other requests.
"""

import asyncio
import logging
import mimetypes
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from pydub.exceptions import CouldntDecodeError

from machine_health.classifier import Classifier
from machine_health.config import Settings
from machine_health.exceptions import ArtifactStoreError, ClassifierError, PersistenceError, ValidationError
from machine_health.repository import AnalysisRecordRepository
from machine_health.schemas import (
    AnalysisRecord,
    AudioArtifact,
    AudioUpload,
    ClassificationResult,
    MachineType,
)
from machine_health.storage import ArtifactStore, build_artifact_path, check_user_id
from machine_health.utils.convert import flac_filename, transcode_to_flac

logger = logging.getLogger(__name__)

# Strong references to in-flight pipelines, so abandoned ones are not garbage collected
_inflight: Set[asyncio.Task] = set()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def wait_pending() -> None:
    """Wait for every in-flight analysis, including ones whose caller went away."""
    while _inflight:
        await asyncio.gather(*list(_inflight), return_exceptions=True)


class AnalysisWorkflow:
    def __init__(
        self,
        store: ArtifactStore,
        classifier: Classifier,
        repository: AnalysisRecordRepository,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.classifier = classifier
        self.repository = repository
        self.settings = settings or Settings()
        self.clock = clock

    def validate(self, user_id: str, upload: Optional[AudioUpload], machine_type) -> MachineType:
        """Check every precondition. Raises ValidationError; performs no I/O."""
        if not user_id:
            raise ValidationError("A user id is required.")
        check_user_id(user_id)
        if upload is None or not upload.content:
            raise ValidationError("Empty file uploaded.")
        if len(upload.content) > self.settings.max_upload_bytes:
            raise ValidationError(
                f"File is {len(upload.content)} bytes; the limit is {self.settings.max_upload_bytes} bytes."
            )
        return MachineType.parse(machine_type)

    async def analyze(self, user_id: str, upload: Optional[AudioUpload], machine_type) -> AnalysisRecord:
        machine = self.validate(user_id, upload, machine_type)

        task = asyncio.ensure_future(self._run(user_id, upload, machine))
        _inflight.add(task)
        task.add_done_callback(_inflight.discard)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.warning(
                    "Caller abandoned analysis of %s for user %s; it will still complete",
                    upload.filename, user_id,
                )
                task.add_done_callback(_log_abandoned_outcome)
            raise

    async def _run(self, user_id: str, upload: AudioUpload, machine: MachineType) -> AnalysisRecord:
        artifact = await self._store_artifact(user_id, upload)
        result = await self._classify(artifact, machine)

        record = AnalysisRecord(
            user_id=user_id,
            machine_type=machine,
            uploaded_audio_path=artifact.path,
            result=result,
            analysis_date=self.clock(),
        )
        try:
            record_id = await asyncio.to_thread(self.repository.insert, record)
        except Exception as e:
            logger.error(
                "Analysis result LOST for %s (user %s, score %s, %s): record could not be saved",
                artifact.path, user_id, result.health_score, result.risk_level.value,
            )
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(f"Could not save analysis record: {e}") from e
        logger.info(
            "Analysis %s stored: %s %s score=%s risk=%s",
            record_id, user_id, machine.value, result.health_score, result.risk_level.value,
        )
        return replace(record, id=record_id)

    async def _store_artifact(self, user_id: str, upload: AudioUpload) -> AudioArtifact:
        data = upload.content
        filename = upload.filename
        content_type = upload.content_type or mimetypes.guess_type(filename or "")[0] or "application/octet-stream"

        if self.settings.transcode_to_flac:
            try:
                data = await asyncio.to_thread(transcode_to_flac, data, filename or "")
            except CouldntDecodeError as e:
                raise ValidationError(f"Could not decode audio file {filename!r}.") from e
            except Exception as e:
                logger.warning("Transcoding %s failed (%s); nothing stored", filename, e)
                raise ArtifactStoreError(f"Could not transcode {filename!r} to FLAC: {e}") from e
            filename = flac_filename(filename or "audio")
            content_type = "audio/flac"

        path = build_artifact_path(user_id, filename)
        try:
            await asyncio.to_thread(self.store.put, path, data, content_type)
        except ArtifactStoreError:
            logger.warning("Artifact upload failed for %s; no record created", path)
            raise
        except Exception as e:
            logger.warning("Artifact upload failed for %s (%s); no record created", path, e)
            raise ArtifactStoreError(f"Could not store artifact: {e}") from e
        logger.info("Stored artifact %s (%d bytes)", path, len(data))
        return AudioArtifact(user_id=user_id, path=path, size_bytes=len(data), content_type=content_type)

    async def _classify(self, artifact: AudioArtifact, machine: MachineType) -> ClassificationResult:
        timeout = self.settings.classifier_timeout_seconds
        try:
            raw = await asyncio.wait_for(self.classifier.classify(artifact, machine), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Classifier timed out after %.1fs; orphaned artifact %s", timeout, artifact.path)
            raise ClassifierError(f"Classification timed out after {timeout:.1f}s.") from e
        except ClassifierError:
            logger.warning("Classifier failed; orphaned artifact %s", artifact.path)
            raise
        except Exception as e:
            logger.warning("Classifier failed (%s); orphaned artifact %s", e, artifact.path)
            raise ClassifierError(f"Classification failed: {e}") from e
        return self._normalize(raw, artifact)

    def _normalize(self, raw: ClassificationResult, artifact: AudioArtifact) -> ClassificationResult:
        if not isinstance(raw, ClassificationResult):
            raise ClassifierError(f"Classifier returned {type(raw).__name__}, not a ClassificationResult.")
        fault_type = (raw.fault_type or "").strip()
        if not fault_type:
            raise ClassifierError("Classifier returned an empty fault label.")
        try:
            result = ClassificationResult.from_score(raw.health_score, fault_type, raw.confidence)
        except (TypeError, ValueError) as e:
            raise ClassifierError(
                f"Classifier returned a non-numeric score or confidence: {raw.health_score!r}, {raw.confidence!r}"
            ) from e
        if result.risk_level != raw.risk_level:
            logger.warning(
                "Classifier tier %r disagrees with score %s for %s; using %r",
                raw.risk_level, result.health_score, artifact.path, result.risk_level.value,
            )
        return result


def _log_abandoned_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Abandoned analysis failed: %s", exc)
    else:
        logger.info("Abandoned analysis finished as record %s", task.result().id)
