import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import time
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.main import app
from src.db.database import Base
from src.models.db_models import Video
from src.repositories.video_repository import VideoRepository
from src.utils import s3_utils
from worker.tool_invoker import ToolResult
import worker.video_processor_task as task


@pytest.fixture(scope="session")
def client():
    """Cliente de pruebas para los endpoints FastAPI"""
    return TestClient(app)


@pytest.fixture
def mock_video_data():
    """Datos falsos para crear o validar un video"""
    return {
        "id": "3f1c0d2e9a8b4c5d6e7f8a9b0c1d2e3f",
        "title": "Video de prueba",
        "description": None,
        "owner_id": "user-1",
        "original_filename": "test_video.mp4",
        "video_key": "video_1234.mp4",
        "visibility": "private",
        "views": 0,
        "duration": 0,
        "status": "uploaded",
        "created_at": "2025-10-19T12:00:00",
        "updated_at": "2025-10-19T12:00:00",
    }


# ---------------------------------------------------------
# Base de datos SQLite temporal
# ---------------------------------------------------------
@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


class RecordingRepository(VideoRepository):
    """Repositorio real que además registra cada transición de estado."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.history = []

    def update_status(self, video_id, status):
        video = super().update_status(video_id, status)
        self.history.append((video_id, status.value))
        return video

    def statuses(self, video_id):
        return [s for vid, s in self.history if vid == video_id]


@pytest.fixture
def repository(session_factory):
    return RecordingRepository(session_factory)


@pytest.fixture
def make_video(session_factory):
    """Crea un video en estado UPLOADED y retorna su id"""

    def _make(title="Video de prueba", filename="clip.mp4", owner_id="user-1", status="uploaded"):
        now = datetime.now()
        with session_factory() as db:
            video = Video(
                id=uuid4().hex,
                title=title,
                owner_id=owner_id,
                original_filename=filename,
                video_key=f"video_{uuid4()}.mp4",
                visibility="private",
                views=0,
                duration=0,
                status=status,
                created_at=now,
                updated_at=now,
                deleted=False,
            )
            db.add(video)
            db.commit()
            return video.id

    return _make


# ---------------------------------------------------------
# ffmpeg / ffprobe simulados
# ---------------------------------------------------------
class FakeInvoker:
    """Simula ffprobe y ffmpeg sin ejecutar procesos.

    - ffprobe responde `probe_output` con `probe_exit_code`.
    - ffmpeg escribe `payload` en el archivo de salida (último argumento),
      salvo que `fail_when(args)` sea verdadero.
    """

    def __init__(self, probe_output="650.0", probe_exit_code=0, fail_when=None, payload=b"x" * 128, delay=0.0):
        self.probe_output = probe_output
        self.probe_exit_code = probe_exit_code
        self.fail_when = fail_when
        self.payload = payload
        self.delay = delay
        self.calls = []
        self.cancelled = False

    def run(self, args):
        args = [str(a) for a in args]
        self.calls.append(args)
        if self.delay:
            time.sleep(self.delay)
        if "format=duration" in args:
            stderr = "" if self.probe_exit_code == 0 else "moov atom not found"
            return ToolResult(args=args, returncode=self.probe_exit_code, stdout=self.probe_output, stderr=stderr)
        if self.fail_when is not None and self.fail_when(args):
            return ToolResult(args=args, returncode=1, stdout="", stderr="ffmpeg error")
        Path(args[-1]).write_bytes(self.payload)
        return ToolResult(args=args, returncode=0)

    def cancel(self):
        self.cancelled = True

    def ffmpeg_calls(self):
        return [c for c in self.calls if "format=duration" not in c]


@pytest.fixture
def make_invoker():
    return FakeInvoker


@pytest.fixture
def fake_s3(monkeypatch):
    """Reemplaza S3: guarda los objetos subidos en memoria."""
    store = {}

    def fake_upload_stream(bucket_name, s3_key, stream, length, content_type):
        store[(bucket_name, s3_key)] = {
            "data": stream.read(),
            "length": length,
            "content_type": content_type,
        }

    def fake_download(bucket_name, s3_key, local_path):
        Path(local_path).write_bytes(b"source video bytes")

    monkeypatch.setattr(s3_utils, "upload_stream", fake_upload_stream)
    monkeypatch.setattr(task, "download_from_s3", fake_download)
    return store
