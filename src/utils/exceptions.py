from typing import Optional


class VideoProcessingException(Exception):
    """Falla terminal de una corrida del pipeline.

    Cubre códigos de salida distintos de cero de ffmpeg/ffprobe, salidas que
    no se pueden interpretar y errores del almacenamiento de objetos.
    """

    def __init__(self, message: str, exit_code: Optional[int] = None, stderr: Optional[str] = None):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr
