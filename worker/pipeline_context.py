from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from src.models.video import SegmentStatus


class SegmentData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    segment_number: int
    status: SegmentStatus = SegmentStatus.PENDING
    storage_key: str
    start_time: int
    end_time: int
    file_size: int = 0
    quality: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


class FrameData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    frame_number: int
    timestamp: int
    storage_key: str
    is_key_frame: bool = True
    frame_type: str = "I-frame"
    quality: Optional[str] = None
    file_size: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    thumbnail_key: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class PipelineContext(BaseModel):
    """
    Estado de una corrida que viaja entre etapas.

    Cada etapa recibe el contexto y retorna uno nuevo; nunca lo modifica en
    sitio. El coordinador persiste lo que cada etapa agrega.
    """

    model_config = ConfigDict(frozen=True)

    video_id: str
    video_key: str
    original_filename: str
    source_path: Optional[str] = None
    duration: int = 0
    segments: Tuple[SegmentData, ...] = ()
    frames: Tuple[FrameData, ...] = ()

    @classmethod
    def from_video(cls, video) -> "PipelineContext":
        return cls(
            video_id=video.id,
            video_key=video.video_key,
            original_filename=video.original_filename,
            duration=video.duration or 0,
        )

    def evolve(self, **changes) -> "PipelineContext":
        return self.model_copy(update=changes)
