from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional


class VideoBase(BaseModel):
    title: str
    description: Optional[str] = None


# Esquema usado al retornar un video desde el API
class VideoOut(VideoBase):
    id: str
    owner_id: str
    original_filename: str
    video_key: str
    visibility: str
    views: int
    duration: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SegmentOut(BaseModel):
    id: str
    segment_number: int
    status: str
    storage_key: str
    start_time: int
    end_time: int
    file_size: int
    quality: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FrameOut(BaseModel):
    id: str
    frame_number: int
    timestamp: int
    storage_key: str
    is_key_frame: bool
    frame_type: Optional[str] = None
    quality: Optional[str] = None
    file_size: int
    created_at: Optional[datetime] = None
    thumbnail_key: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# Vista completa: solo campos que escribe el pipeline
class VideoDetailOut(VideoOut):
    segments: List[SegmentOut] = []
    key_frames: List[FrameOut] = []
