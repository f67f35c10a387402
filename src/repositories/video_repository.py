import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import selectinload

from src.models.db_models import Video, VideoSegment, VideoFrame
from src.models.video import VideoStatus, ensure_transition

logger = logging.getLogger(__name__)


class VideoNotFound(LookupError):
    pass


class VideoRepository:
    """Acceso a la BD para el pipeline.

    Cada método abre su propia sesión y hace commit: lectura-modificación-
    escritura por etapa, sin control de concurrencia optimista. Una corrida es
    la única escritora de su video.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _load(self, db, video_id: str) -> Video:
        video = (
            db.query(Video)
            .options(selectinload(Video.segments), selectinload(Video.key_frames))
            .filter(Video.id == video_id)
            .first()
        )
        if video is None:
            raise VideoNotFound(f"El video con id={video_id} no existe.")
        return video

    def get(self, video_id: str) -> Video:
        with self.session_factory() as db:
            video = self._load(db, video_id)
            db.expunge(video)
            return video

    def update_status(self, video_id: str, status: VideoStatus) -> Video:
        with self.session_factory() as db:
            video = self._load(db, video_id)
            video.status = ensure_transition(video.status, status).value
            video.updated_at = datetime.now()
            db.commit()
            db.refresh(video)
            db.expunge(video)
        logger.info(f"Video {video_id} -> {status.value}")
        return video

    def save_duration(self, video_id: str, duration: int):
        with self.session_factory() as db:
            video = self._load(db, video_id)
            video.duration = duration
            video.updated_at = datetime.now()
            db.commit()

    def save_segments(self, video_id: str, segments: Iterable):
        with self.session_factory() as db:
            video = self._load(db, video_id)
            video.segments = [
                VideoSegment(
                    id=s.id,
                    segment_number=s.segment_number,
                    status=s.status.value,
                    storage_key=s.storage_key,
                    start_time=s.start_time,
                    end_time=s.end_time,
                    file_size=s.file_size,
                    quality=s.quality,
                    created_at=s.created_at,
                )
                for s in segments
            ]
            video.updated_at = datetime.now()
            db.commit()

    def save_frames(self, video_id: str, frames: Iterable):
        with self.session_factory() as db:
            video = self._load(db, video_id)
            video.key_frames = [
                VideoFrame(
                    id=f.id,
                    frame_number=f.frame_number,
                    timestamp=f.timestamp,
                    storage_key=f.storage_key,
                    is_key_frame=f.is_key_frame,
                    frame_type=f.frame_type,
                    quality=f.quality,
                    file_size=f.file_size,
                    created_at=f.created_at,
                    thumbnail_key=f.thumbnail_key,
                    width=f.width,
                    height=f.height,
                )
                for f in frames
            ]
            video.updated_at = datetime.now()
            db.commit()
