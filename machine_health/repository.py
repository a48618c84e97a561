import logging
import threading
from datetime import timezone
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from machine_health.exceptions import PersistenceError
from machine_health.models import AnalysisRecordRow
from machine_health.schemas import AnalysisRecord, ClassificationResult, MachineType

logger = logging.getLogger(__name__)


def _to_record(row: AnalysisRecordRow) -> AnalysisRecord:
    analysis_date = row.analysis_date
    # SQLite hands back naive datetimes even for timezone-aware columns
    if analysis_date is not None and analysis_date.tzinfo is None:
        analysis_date = analysis_date.replace(tzinfo=timezone.utc)
    return AnalysisRecord(
        id=row.id,
        user_id=row.user_id,
        machine_type=MachineType(row.machine_type),
        uploaded_audio_path=row.uploaded_audio_path,
        result=ClassificationResult.from_score(
            row.health_score, row.fault_type_prediction, row.confidence_score
        ),
        analysis_date=analysis_date,
    )


class AnalysisRecordRepository:
    """Insert-and-query access to ``audio_analysis_history``. Records are never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db
        # A Session is not thread-safe and inserts arrive from worker threads
        self._lock = threading.Lock()

    def insert(self, record: AnalysisRecord) -> int:
        row = AnalysisRecordRow(
            user_id=record.user_id,
            machine_type=record.machine_type.value,
            uploaded_audio_path=record.uploaded_audio_path,
            health_score=record.result.health_score,
            risk_level=record.result.risk_level.value,
            fault_type_prediction=record.result.fault_type,
            confidence_score=record.result.confidence,
            analysis_date=record.analysis_date,
        )
        with self._lock:
            try:
                self.db.add(row)
                self.db.commit()
                self.db.refresh(row)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise PersistenceError(f"Could not save analysis record: {e}") from e
        logger.debug("Inserted analysis record %s for user %s", row.id, row.user_id)
        return row.id

    def list_by_user(self, user_id: str) -> List[AnalysisRecord]:
        """All records of ``user_id``, newest analysis first; ties go to the later insert."""
        rows = (
            self.db.query(AnalysisRecordRow)
            .filter(AnalysisRecordRow.user_id == user_id)
            .order_by(AnalysisRecordRow.analysis_date.desc(), AnalysisRecordRow.id.desc())
            .all()
        )
        return [_to_record(r) for r in rows]

    def get(self, user_id: str, record_id: int) -> Optional[AnalysisRecord]:
        row = (
            self.db.query(AnalysisRecordRow)
            .filter(AnalysisRecordRow.id == record_id, AnalysisRecordRow.user_id == user_id)
            .first()
        )
        return _to_record(row) if row else None
