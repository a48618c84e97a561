from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Float, Index, Integer, String

from machine_health.database import Base


class AnalysisRecordRow(Base):
    __tablename__ = "audio_analysis_history"
    __table_args__ = (
        Index("ix_audio_analysis_history_user_date", "user_id", "analysis_date"),
        CheckConstraint("health_score BETWEEN 0 AND 100", name="ck_health_score_range"),
        CheckConstraint("confidence_score BETWEEN 0 AND 100", name="ck_confidence_score_range"),
        CheckConstraint("risk_level IN ('healthy', 'warning', 'critical')", name="ck_risk_level_enum"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String, nullable=False)
    machine_type = Column(String, nullable=False)
    uploaded_audio_path = Column(String, nullable=False)
    health_score = Column(Integer, nullable=False)
    risk_level = Column(String(16), nullable=False)
    fault_type_prediction = Column(String, nullable=False)
    confidence_score = Column(Float, nullable=False)

    # Always timezone-aware UTC when created from Python
    analysis_date = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
