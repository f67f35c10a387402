import boto3
from botocore.exceptions import BotoCoreError, ClientError
import logging
from functools import lru_cache
from pathlib import Path
from uuid import uuid4

from src.config import S3_ENDPOINT_URL, S3_REGION
from src.utils.exceptions import VideoProcessingException

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_s3_client():
    """Cliente S3 compartido. Con S3_ENDPOINT_URL apunta a MinIO."""
    return boto3.client("s3", endpoint_url=S3_ENDPOINT_URL, region_name=S3_REGION)


def build_object_key(kind: str, ext: str) -> str:
    """Genera una llave nueva del tipo `{kind}_{uuid}.{ext}`."""
    return f"{kind}_{uuid4()}.{ext}"


def ensure_bucket(bucket_name: str) -> None:
    """Crea el bucket si no existe. Idempotente."""
    s3_client = get_s3_client()
    try:
        s3_client.head_bucket(Bucket=bucket_name)
        return
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        if code not in ("404", "NoSuchBucket", "NotFound"):
            raise
    logger.info(f"Bucket '{bucket_name}' no existe, creándolo...")
    try:
        s3_client.create_bucket(Bucket=bucket_name)
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        # otro worker pudo crearlo entre el head y el create
        if code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
            raise


def upload_stream(bucket_name: str, s3_key: str, stream, length: int, content_type: str) -> None:
    """Sube un stream de bytes a `bucket_name/s3_key`.

    No protege contra sobreescritura: las llaves siempre son nuevas.
    """
    try:
        ensure_bucket(bucket_name)
        get_s3_client().put_object(
            Bucket=bucket_name,
            Key=s3_key,
            Body=stream,
            ContentLength=length,
            ContentType=content_type,
        )
        logger.info(f"✅ Archivo subido a S3: {bucket_name}/{s3_key}")
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Error subiendo a S3: {e}")
        raise VideoProcessingException(f"Error subiendo {s3_key} a {bucket_name}: {e}") from e


def upload_file(local_path: Path, bucket_name: str, s3_key: str, content_type: str) -> int:
    """Sube un archivo local y retorna su tamaño en bytes."""
    local_path = Path(local_path)
    size = local_path.stat().st_size
    with open(local_path, "rb") as f:
        upload_stream(bucket_name, s3_key, f, size, content_type)
    return size


def download_from_s3(bucket_name: str, s3_key: str, local_path: Path) -> None:
    """Descarga un objeto de S3 a un archivo local."""
    try:
        get_s3_client().download_file(bucket_name, s3_key, str(local_path))
        logger.info(f"⬇️ Archivo descargado desde S3: {bucket_name}/{s3_key}")
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Error descargando desde S3: {e}")
        raise VideoProcessingException(f"Error descargando {s3_key} desde {bucket_name}: {e}") from e
