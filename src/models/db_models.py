from uuid import uuid4

from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from src.db.database import Base
from src.models.video import VideoStatus, SegmentStatus, Visibility


def _new_id():
    return uuid4().hex


class Video(Base):
    __tablename__ = "videos"

    id = Column(String(32), primary_key=True, index=True, default=_new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String, index=True, nullable=False)
    original_filename = Column(String, nullable=False)
    video_key = Column(String, nullable=False)
    visibility = Column(String, default=Visibility.PRIVATE.value)
    views = Column(Integer, default=0)
    duration = Column(Integer, default=0)  # segundos enteros, nunca negativo
    status = Column(String, default=VideoStatus.UPLOADED.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    deleted = Column(Boolean, default=False)

    segments = relationship(
        "VideoSegment",
        back_populates="video",
        order_by="VideoSegment.segment_number",
        cascade="all, delete-orphan",
    )
    key_frames = relationship(
        "VideoFrame",
        back_populates="video",
        order_by="VideoFrame.frame_number",
        cascade="all, delete-orphan",
    )


class VideoSegment(Base):
    __tablename__ = "video_segments"

    id = Column(String(36), primary_key=True)
    video_id = Column(String(32), ForeignKey("videos.id"), index=True, nullable=False)
    segment_number = Column(Integer, nullable=False)
    status = Column(String, default=SegmentStatus.PENDING.value)
    storage_key = Column(String, nullable=False)
    start_time = Column(Integer, nullable=False)
    end_time = Column(Integer, nullable=False)  # exclusivo
    file_size = Column(BigInteger, default=0)
    quality = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    video = relationship("Video", back_populates="segments")


class VideoFrame(Base):
    __tablename__ = "video_frames"

    id = Column(String(36), primary_key=True)
    video_id = Column(String(32), ForeignKey("videos.id"), index=True, nullable=False)
    frame_number = Column(Integer, nullable=False)
    timestamp = Column(Integer, nullable=False)
    storage_key = Column(String, nullable=False)
    is_key_frame = Column(Boolean, default=True)
    frame_type = Column(String, nullable=True)
    quality = Column(String, nullable=True)
    file_size = Column(BigInteger, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    thumbnail_key = Column(String, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    video = relationship("Video", back_populates="key_frames")
