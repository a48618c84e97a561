import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from machine_health import __version__
from machine_health.classifier import Classifier, build_classifier
from machine_health.config import Settings, get_settings
from machine_health.database import get_db
from machine_health.exceptions import (
    AnalysisError,
    ArtifactStoreError,
    ClassifierError,
    PersistenceError,
    ValidationError,
)
from machine_health.gauge import gauge_view
from machine_health.history import HistoryQueryService
from machine_health.repository import AnalysisRecordRepository
from machine_health.schemas import AudioUpload, MachineType
from machine_health.storage import ArtifactStore, build_artifact_store
from machine_health.utils.convert import ensure_ffmpeg
from machine_health.workflow import AnalysisWorkflow

logger = logging.getLogger(__name__)


# ----------------- Logging -----------------
def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format="[%(levelname)s] %(name)s: %(message)s")
    logging.getLogger("machine_health").setLevel(level)


configure_logging(get_settings().log_level)

# ----------------- FFmpeg -----------------
if get_settings().transcode_to_flac:
    ensure_ffmpeg()

# ----------------- App & CORS -----------------
app = FastAPI(title="Machine Health Audio API", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_FOR_ERROR = {
    ValidationError: 400,
    ArtifactStoreError: 502,
    ClassifierError: 503,
    PersistenceError: 500,
}


# ----------------- Dependencies -----------------
def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """The upstream auth layer sets X-User-Id; this service trusts it."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header.")
    return x_user_id.strip()


@lru_cache(maxsize=1)
def get_artifact_store() -> ArtifactStore:
    return build_artifact_store(get_settings())


@lru_cache(maxsize=1)
def get_classifier() -> Classifier:
    return build_classifier(get_settings())


def get_workflow(
    db: Session = Depends(get_db),
    store: ArtifactStore = Depends(get_artifact_store),
    classifier: Classifier = Depends(get_classifier),
    settings: Settings = Depends(get_settings),
) -> AnalysisWorkflow:
    return AnalysisWorkflow(store, classifier, AnalysisRecordRepository(db), settings)


def get_history(db: Session = Depends(get_db)) -> HistoryQueryService:
    return HistoryQueryService(AnalysisRecordRepository(db))


def _to_http(e: AnalysisError) -> HTTPException:
    for error_type, status in _STATUS_FOR_ERROR.items():
        if isinstance(e, error_type):
            break
    else:
        status = 500
    detail = str(e)
    if isinstance(e, PersistenceError):
        detail = f"Analysis was computed but could not be saved: {e}"
    elif isinstance(e, (ArtifactStoreError, ClassifierError)):
        detail = f"{e} Please retry the upload."
    return HTTPException(status_code=status, detail=detail)


# ----------------- Routes -----------------
@app.get("/")
def root():
    return {"message": "Machine health audio API is running"}


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


@app.get("/machine-types")
def machine_types():
    return [m.value for m in MachineType]


@app.post("/analyses", status_code=201)
async def create_analysis(
    file: Optional[UploadFile] = File(None),
    machine_type: str = Form(""),
    user_id: str = Depends(get_current_user_id),
    workflow: AnalysisWorkflow = Depends(get_workflow),
):
    upload = None
    if file is not None:
        contents = await file.read()
        upload = AudioUpload(filename=file.filename or "audio", content=contents, content_type=file.content_type)

    try:
        record = await workflow.analyze(user_id, upload, machine_type)
    except AnalysisError as e:
        logger.warning("Analysis failed for user %s: %s", user_id, e)
        raise _to_http(e) from e

    return {
        "id": record.id,
        "result": record.result_view(),
        "gauge": gauge_view(record.health_score),
        "uploaded_audio_path": record.uploaded_audio_path,
        "machine_type": record.machine_type.value,
        "analysis_date": record.analysis_date.isoformat(),
    }


@app.get("/analyses")
def list_analyses(
    q: str = Query(""),
    risk: str = Query("all"),
    start_time: Optional[str] = Query(None),
    end_time: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    history: HistoryQueryService = Depends(get_history),
):
    try:
        records = history.search(user_id, q, risk, start_time, end_time)
    except ValidationError as e:
        raise _to_http(e) from e
    return [r.to_dict() for r in records]


@app.get("/analyses/summary")
def analyses_summary(
    days: int = Query(7, ge=1, le=90),
    user_id: str = Depends(get_current_user_id),
    history: HistoryQueryService = Depends(get_history),
):
    return history.dashboard(user_id, days=days)


@app.get("/analyses/{record_id}")
def get_analysis(
    record_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    record = AnalysisRecordRepository(db).get(user_id, record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Analysis not found")
    body = record.to_dict()
    body["result"] = record.result_view()
    body["gauge"] = gauge_view(record.health_score)
    return body


@app.get("/gauge")
def gauge(score: float = Query(...), size: float = Query(200, gt=0)):
    return gauge_view(score, size)
