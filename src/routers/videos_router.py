from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, Request, status, Form
from sqlalchemy.orm import Session
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from src.config import VIDEOS_BUCKET
from src.db.database import get_db
from src.models.db_models import Video
from src.models.video import VideoStatus, Visibility
import src.schemas.pydantic_schemas as schemas
from src.utils.exceptions import VideoProcessingException
from src.utils.s3_utils import upload_stream, build_object_key

router = APIRouter(prefix="/api/videos", tags=["Videos"])

logger = logging.getLogger(__name__)

VALID_EXTENSIONS = {".mp4", ".avi", ".mov", ".mkv", ".wmv", ".flv"}


# =======================================================
# FUNCIONES AUXILIARES
# =======================================================
def _video_extension(filename: Optional[str]) -> Optional[str]:
    """Retorna la extensión en minúsculas si es un formato de video aceptado."""
    if not filename:
        return None
    ext = Path(filename).suffix.lower()
    return ext if ext in VALID_EXTENSIONS else None


def get_coordinator(request: Request):
    """Coordinador del pipeline creado en el lifespan de la app."""
    return request.app.state.coordinator


def _get_visible_video(db: Session, video_id: str) -> Video:
    video = db.query(Video).filter(Video.id == video_id, Video.deleted.is_(False)).first()
    if not video:
        raise HTTPException(status_code=404, detail=f"El video con id={video_id} no existe.")
    return video


# =======================================================
# ENDPOINTS
# =======================================================

@router.post(
    "/upload",
    status_code=201,
    response_model=schemas.VideoOut,
    summary="Sube un video y encola su procesamiento.",
)
async def upload_video(
    title: str = Form(""),
    owner_id: str = Form(...),
    description: Optional[str] = Form(None),
    visibility: Visibility = Form(Visibility.PRIVATE),
    video_file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    coordinator=Depends(get_coordinator),
):
    if not coordinator.accepting:
        raise HTTPException(status_code=503, detail="El servicio se está apagando, intente más tarde")

    if video_file is None:
        raise HTTPException(status_code=400, detail="El archivo de video es obligatorio")

    logger.info(f"Subiendo archivo: {video_file.filename}")

    if not title.strip():
        raise HTTPException(status_code=400, detail="El título no puede estar vacío")

    ext = _video_extension(video_file.filename)
    if ext is None:
        raise HTTPException(
            status_code=400,
            detail=f"Formato de video inválido. Formatos permitidos: {', '.join(sorted(VALID_EXTENSIONS))}",
        )

    contents = await video_file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="El archivo de video está vacío")

    # Subir el original al bucket de videos
    video_key = build_object_key("video", "mp4")
    try:
        upload_stream(VIDEOS_BUCKET, video_key, io.BytesIO(contents), len(contents), f"video/{ext.lstrip('.')}")
    except VideoProcessingException as e:
        raise HTTPException(status_code=500, detail=f"Error subiendo el archivo: {e}")

    # Registrar en BD con estado inicial
    now = datetime.now()
    new_video = Video(
        id=uuid4().hex,
        title=title,
        description=description,
        owner_id=owner_id,
        original_filename=video_file.filename,
        video_key=video_key,
        visibility=visibility.value,
        views=0,
        duration=0,
        status=VideoStatus.UPLOADED.value,
        created_at=now,
        updated_at=now,
        deleted=False,
    )
    db.add(new_video)
    db.commit()
    db.refresh(new_video)
    logger.info(f"Video creado con ID: {new_video.id}")

    # Encolar el procesamiento sin esperar el resultado
    try:
        coordinator.submit(new_video.id)
    except RuntimeError as e:
        # sin corrida el registro nunca saldría de UPLOADED
        logger.error(f"Error encolando el procesamiento del video {new_video.id}: {e}")
        db.delete(new_video)
        db.commit()
        raise HTTPException(status_code=503, detail="El servicio se está apagando, intente más tarde")

    return new_video


@router.get(
    "/",
    response_model=List[schemas.VideoOut],
    summary="Lista los videos no eliminados, opcionalmente de un dueño",
)
def list_videos(
    owner_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Video).filter(Video.deleted.is_(False))
    if owner_id is not None:
        query = query.filter(Video.owner_id == owner_id)
    return query.order_by(Video.created_at.desc()).all()


@router.get(
    "/{video_id}",
    response_model=schemas.VideoDetailOut,
    summary="Obtiene un video con sus segmentos y key frames",
)
def get_video_by_id(
    video_id: str,
    db: Session = Depends(get_db),
):
    return _get_visible_video(db, video_id)


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_200_OK,
    summary="Marca un video como eliminado (soft delete)",
)
def delete_video_by_id(
    video_id: str,
    db: Session = Depends(get_db),
):
    video = _get_visible_video(db, video_id)
    video.deleted = True
    video.updated_at = datetime.now()
    db.commit()

    return {"message": f"Video '{video.title}' eliminado correctamente.", "video_id": video_id}
