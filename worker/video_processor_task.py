import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from src.config import (
    VIDEOS_BUCKET,
    SEGMENT_DURATION,
    FRAME_INTERVAL,
    WORKER_POOL_SIZE,
    SHUTDOWN_GRACE_SECONDS,
    SHUTDOWN_KILL_SECONDS,
    SCRATCH_DIR,
)
from src.models.video import VideoStatus
from src.repositories.video_repository import VideoRepository
from src.utils.exceptions import VideoProcessingException
from src.utils.s3_utils import download_from_s3
from worker.pipeline_context import PipelineContext
from worker.tool_invoker import ToolInvoker
from worker.video_stages import extract_metadata, segment_video, extract_key_frames
from worker.worker_pool import WorkerPool

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PipelineCoordinator:
    """
    Orquesta el procesamiento asíncrono de videos.

    Cada corrida ocupa un worker del pool y ejecuta en orden: metadatos,
    segmentación y key frames, persistiendo tras cada etapa. Si una etapa
    falla el video queda en FAILED; lo ya persistido no se revierte y no hay
    reintentos.
    """

    def __init__(
        self,
        repository: VideoRepository,
        invoker: Optional[ToolInvoker] = None,
        pool_size: int = WORKER_POOL_SIZE,
        segment_duration: int = SEGMENT_DURATION,
        frame_interval: int = FRAME_INTERVAL,
        scratch_dir: Path = SCRATCH_DIR,
        videos_bucket: str = VIDEOS_BUCKET,
    ):
        if segment_duration <= 0:
            raise ValueError("segment_duration debe ser positivo")
        if frame_interval <= 0:
            raise ValueError("frame_interval debe ser positivo")

        self.repository = repository
        self.invoker = invoker or ToolInvoker()
        self.segment_duration = segment_duration
        self.frame_interval = frame_interval
        self.scratch_dir = Path(scratch_dir)
        self.videos_bucket = videos_bucket
        self.pool = WorkerPool(size=pool_size, name="video-pipeline")

    def start(self):
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        self.pool.start()

    @property
    def accepting(self) -> bool:
        return not self.pool.closed

    def submit(self, video_id: str):
        """Encola la corrida y retorna de inmediato."""
        self.pool.submit(self.process_video, video_id)
        logger.info(f"Video {video_id} encolado para procesamiento")

    def shutdown(self, grace_period: float = SHUTDOWN_GRACE_SECONDS, kill_timeout: float = SHUTDOWN_KILL_SECONDS) -> bool:
        return self.pool.shutdown(grace_period, on_timeout=self.invoker.cancel, kill_timeout=kill_timeout)

    def process_video(self, video_id: str) -> dict:
        start_time = datetime.now()
        local_source = None

        try:
            video = self.repository.update_status(video_id, VideoStatus.PROCESSING)
            logger.info(f"Iniciando procesamiento del video {video_id}")
            ctx = PipelineContext.from_video(video)
            if self.invoker.cancelled:
                raise VideoProcessingException("Procesamiento cancelado por apagado del pool")

            local_source = self.scratch_dir / f"source_{video_id}{Path(ctx.original_filename).suffix.lower()}"
            self.scratch_dir.mkdir(parents=True, exist_ok=True)
            download_from_s3(self.videos_bucket, ctx.video_key, local_source)
            ctx = ctx.evolve(source_path=str(local_source))

            ctx = extract_metadata(ctx, self.invoker)
            self.repository.save_duration(video_id, ctx.duration)
            logger.info(f"Metadatos extraídos para el video {video_id}: {ctx.duration}s")

            ctx = segment_video(ctx, self.invoker, self.segment_duration, self.scratch_dir)
            self.repository.save_segments(video_id, ctx.segments)
            logger.info(f"Segmentación completada para el video {video_id}: {len(ctx.segments)} segmentos")

            ctx = extract_key_frames(ctx, self.invoker, self.frame_interval, self.scratch_dir)
            self.repository.save_frames(video_id, ctx.frames)
            logger.info(f"Key frames extraídos para el video {video_id}: {len(ctx.frames)} frames")

            self.repository.update_status(video_id, VideoStatus.READY)
            logger.info(f"✅ Video {video_id} procesado correctamente")

            return {
                "success": True,
                "video_id": video_id,
                "status": VideoStatus.READY.value,
                "duration": ctx.duration,
                "segments": len(ctx.segments),
                "frames": len(ctx.frames),
                "timestamp": datetime.now().isoformat(),
                "processing_time_seconds": round((datetime.now() - start_time).total_seconds(), 2),
            }

        except VideoProcessingException as e:
            logger.error(f"❌ Falló el procesamiento del video {video_id}: {e}")
            return self._fail(video_id, str(e))

        except Exception as e:
            logger.exception(f"❌ Error general procesando el video {video_id}: {e}")
            return self._fail(video_id, str(e))

        finally:
            if local_source is not None:
                try:
                    local_source.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    logger.warning(f"Error eliminando archivo temporal {local_source}: {cleanup_error}")

    def _fail(self, video_id: str, error: str) -> dict:
        status = VideoStatus.FAILED.value
        try:
            self.repository.update_status(video_id, VideoStatus.FAILED)
        except Exception as e:
            logger.error(f"No se pudo marcar el video {video_id} como FAILED: {e}")
            status = None
        return {
            "success": False,
            "video_id": video_id,
            "status": status,
            "error": error,
            "timestamp": datetime.now().isoformat(),
        }
