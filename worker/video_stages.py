"""
Etapas del pipeline: metadatos, segmentación y extracción de key frames.

Cada etapa recibe un PipelineContext y retorna uno nuevo. Ninguna persiste en
la BD; de eso se encarga el coordinador al terminar cada etapa, así que una
falla a mitad de la segmentación o de los frames no deja nada persistido.
"""

import logging
import math
from pathlib import Path
from typing import List, Tuple
from uuid import uuid4

from src.config import SEGMENTS_BUCKET, FRAMES_BUCKET
from src.models.video import SegmentStatus
from src.utils.exceptions import VideoProcessingException
from src.utils.s3_utils import upload_file, build_object_key
from worker.pipeline_context import PipelineContext, SegmentData, FrameData
from worker.tool_invoker import probe_duration_command, segment_command, frame_command

logger = logging.getLogger(__name__)

KEY_FRAME_TYPE = "I-frame"


def _source(ctx: PipelineContext) -> str:
    if not ctx.source_path:
        raise VideoProcessingException(f"El video {ctx.video_id} no tiene archivo fuente local")
    return ctx.source_path


def _remove_scratch(path: Path):
    try:
        path.unlink(missing_ok=True)
    except OSError as cleanup_error:
        logger.warning(f"Error eliminando archivo temporal {path}: {cleanup_error}")


def parse_duration(raw: str) -> int:
    """Convierte la salida de ffprobe a segundos enteros (truncando)."""
    try:
        value = float(raw.strip())
    except (AttributeError, ValueError) as e:
        raise VideoProcessingException(f"No se pudo interpretar la duración del video: {raw!r}") from e
    if not math.isfinite(value) or value < 0:
        raise VideoProcessingException(f"Duración inválida reportada por ffprobe: {raw!r}")
    return int(value)


def segment_bounds(duration: int, segment_duration: int) -> List[Tuple[int, int, int]]:
    """Tripletas (número, inicio, fin) que cubren [0, duration) sin traslapes."""
    if segment_duration <= 0:
        raise ValueError("segment_duration debe ser positivo")
    return [
        (number, start, min(start + segment_duration, duration))
        for number, start in enumerate(range(0, duration, segment_duration))
    ]


def frame_timestamps(duration: int, frame_interval: int) -> List[int]:
    if frame_interval <= 0:
        raise ValueError("frame_interval debe ser positivo")
    return list(range(0, duration, frame_interval))


# =======================================================
# ETAPA 1: METADATOS
# =======================================================
def extract_metadata(ctx: PipelineContext, invoker) -> PipelineContext:
    logger.debug(f"Extrayendo metadatos de {ctx.original_filename}")

    result = invoker.run(probe_duration_command(_source(ctx)))
    if not result.ok:
        raise VideoProcessingException(
            f"FFprobe falló con código de salida {result.returncode}: {result.stderr}",
            exit_code=result.returncode,
            stderr=result.stderr,
        )

    duration = parse_duration(result.stdout)
    logger.debug(f"Duración del video {ctx.video_id}: {duration} s")
    return ctx.evolve(duration=duration)


# =======================================================
# ETAPA 2: SEGMENTACIÓN
# =======================================================
def segment_video(
    ctx: PipelineContext,
    invoker,
    segment_duration: int,
    scratch_dir: Path,
    bucket_name: str = SEGMENTS_BUCKET,
) -> PipelineContext:
    source = _source(ctx)
    scratch_dir = Path(scratch_dir)
    scratch_dir.mkdir(parents=True, exist_ok=True)

    segments = []
    for number, start, end in segment_bounds(ctx.duration, segment_duration):
        segment_id = str(uuid4())
        local_segment = scratch_dir / f"{segment_id}.mp4"
        try:
            result = invoker.run(segment_command(source, start, end - start, local_segment))
            if not result.ok:
                raise VideoProcessingException(
                    f"FFmpeg falló segmentando el segmento {number} "
                    f"con código de salida {result.returncode}: {result.stderr}",
                    exit_code=result.returncode,
                    stderr=result.stderr,
                )

            segment_key = build_object_key("segment", "mp4")
            file_size = upload_file(local_segment, bucket_name, segment_key, "video/mp4")
        finally:
            _remove_scratch(local_segment)

        segments.append(
            SegmentData(
                id=segment_id,
                segment_number=number,
                status=SegmentStatus.READY,
                storage_key=segment_key,
                start_time=start,
                end_time=end,
                file_size=file_size,
            )
        )

    logger.debug(f"{len(segments)} segmentos creados para el video {ctx.video_id}")
    return ctx.evolve(segments=tuple(segments))


# =======================================================
# ETAPA 3: KEY FRAMES
# =======================================================
def extract_key_frames(
    ctx: PipelineContext,
    invoker,
    frame_interval: int,
    scratch_dir: Path,
    bucket_name: str = FRAMES_BUCKET,
) -> PipelineContext:
    """Toma un frame cada `frame_interval` segundos.

    No hay detección de escenas ni se lee el tipo real de frame del códec:
    todos se marcan como key frame de tipo I-frame.
    """
    source = _source(ctx)
    scratch_dir = Path(scratch_dir)
    scratch_dir.mkdir(parents=True, exist_ok=True)

    frames = []
    for number, timestamp in enumerate(frame_timestamps(ctx.duration, frame_interval)):
        frame_id = str(uuid4())
        local_frame = scratch_dir / f"{frame_id}.jpg"
        try:
            result = invoker.run(frame_command(source, timestamp, local_frame))
            if not result.ok:
                raise VideoProcessingException(
                    f"FFmpeg falló extrayendo el frame {number} en t={timestamp}s "
                    f"con código de salida {result.returncode}: {result.stderr}",
                    exit_code=result.returncode,
                    stderr=result.stderr,
                )

            frame_key = build_object_key("frame", "jpg")
            file_size = upload_file(local_frame, bucket_name, frame_key, "image/jpeg")
        finally:
            _remove_scratch(local_frame)

        frames.append(
            FrameData(
                id=frame_id,
                frame_number=number,
                timestamp=timestamp,
                storage_key=frame_key,
                is_key_frame=True,
                frame_type=KEY_FRAME_TYPE,
                file_size=file_size,
            )
        )

    logger.debug(f"{len(frames)} key frames extraídos para el video {ctx.video_id}")
    return ctx.evolve(frames=tuple(frames))
