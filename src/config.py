import os
from pathlib import Path

BASE_DIR = Path(__file__).parent.parent

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./videos.db")

# Almacenamiento de objetos (S3 o MinIO)
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL")
S3_REGION = os.getenv("AWS_DEFAULT_REGION", "us-east-1")
VIDEOS_BUCKET = os.getenv("VIDEOS_BUCKET", "videos")
SEGMENTS_BUCKET = os.getenv("SEGMENTS_BUCKET", "segments")
FRAMES_BUCKET = os.getenv("FRAMES_BUCKET", "frames")

# Pipeline de procesamiento
SEGMENT_DURATION = int(os.getenv("SEGMENT_DURATION", "300"))
FRAME_INTERVAL = int(os.getenv("FRAME_INTERVAL", "10"))
WORKER_POOL_SIZE = int(os.getenv("WORKER_POOL_SIZE", "4"))
SHUTDOWN_GRACE_SECONDS = float(os.getenv("SHUTDOWN_GRACE_SECONDS", "60"))
SHUTDOWN_KILL_SECONDS = float(os.getenv("SHUTDOWN_KILL_SECONDS", "10"))
SCRATCH_DIR = Path(os.getenv("SCRATCH_DIR", str(BASE_DIR / "videos" / "scratch")))

FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg")
FFPROBE_BIN = os.getenv("FFPROBE_BIN", "ffprobe")
