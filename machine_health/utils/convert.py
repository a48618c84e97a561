import io
import logging
import shutil
from pathlib import PurePosixPath

from pydub import AudioSegment

logger = logging.getLogger(__name__)


def ensure_ffmpeg() -> None:
    """Fail fast when the binaries pydub shells out to are not on PATH."""
    missing = [name for name in ("ffmpeg", "ffprobe") if shutil.which(name) is None]
    if missing:
        raise RuntimeError(f"{' and '.join(missing)} not found on PATH. FLAC transcoding will fail.")
    logger.info("Using ffmpeg: %s", shutil.which("ffmpeg"))


def flac_filename(filename: str) -> str:
    """Swap the extension of ``filename`` for ``.flac``."""
    path = PurePosixPath(filename)
    return f"{path.stem or 'audio'}.flac"


def transcode_to_flac(contents: bytes, original_filename: str) -> bytes:
    """Decode an uploaded clip with ffmpeg (via pydub) and re-encode it as FLAC.

    The container is guessed from the file extension, like the upload form does.
    Raises whatever pydub/ffmpeg raises when the clip cannot be decoded.
    """
    file_ext = PurePosixPath(original_filename).suffix.lstrip(".").lower() or None
    audio = AudioSegment.from_file(io.BytesIO(contents), format=file_ext)
    flac_io = io.BytesIO()
    audio.export(flac_io, format="flac")
    flac_data = flac_io.getvalue()
    logger.info(
        "Transcoded %s to FLAC (%d -> %d bytes, %.1fs)",
        original_filename, len(contents), len(flac_data), len(audio) / 1000.0,
    )
    return flac_data
