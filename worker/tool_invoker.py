import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import List, Sequence

from src.config import FFMPEG_BIN, FFPROBE_BIN
from src.utils.exceptions import VideoProcessingException

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ToolInvoker:
    """Ejecuta ffprobe/ffmpeg como subproceso bloqueante.

    Nunca lanza excepción por un código de salida distinto de cero: retorna un
    ToolResult y el llamador decide. Tras `cancel()` mata los procesos vivos y
    rechaza nuevas invocaciones.
    """

    def __init__(self):
        self._processes = set()
        self._lock = threading.Lock()
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def active_processes(self) -> int:
        with self._lock:
            return len(self._processes)

    def run(self, args: Sequence[str]) -> ToolResult:
        args = [str(a) for a in args]
        if self.cancelled:
            raise VideoProcessingException(f"Invocación cancelada por apagado: {args[0]}")

        logger.debug(f"Ejecutando: {' '.join(args)}")
        process = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
        with self._lock:
            self._processes.add(process)
            # cancel() pudo ejecutarse entre el chequeo inicial y el registro
            if self._cancelled.is_set():
                process.kill()
        try:
            # communicate() drena ambos streams antes de esperar el exit code
            stdout, stderr = process.communicate()
        finally:
            with self._lock:
                self._processes.discard(process)

        return ToolResult(args=args, returncode=process.returncode, stdout=stdout, stderr=stderr)

    def cancel(self) -> None:
        """Marca el invocador como cancelado y mata los subprocesos en curso."""
        self._cancelled.set()
        with self._lock:
            processes = list(self._processes)
        for process in processes:
            try:
                process.kill()
            except OSError as e:
                logger.warning(f"No se pudo matar el proceso {process.pid}: {e}")
        if processes:
            logger.warning(f"{len(processes)} proceso(s) externos interrumpidos")


# =======================================================
# COMANDOS FFPROBE / FFMPEG
# =======================================================
def probe_duration_command(source) -> List[str]:
    return [
        FFPROBE_BIN,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(source),
    ]


def segment_command(source, start: int, duration: int, output) -> List[str]:
    """Copia el rango [start, start+duration) sin recodificar, empezando en t=0."""
    return [
        FFMPEG_BIN,
        "-y",
        "-loglevel",
        "error",
        "-i",
        str(source),
        "-ss",
        str(start),
        "-t",
        str(duration),
        "-c",
        "copy",
        "-avoid_negative_ts",
        "make_zero",
        str(output),
    ]


def frame_command(source, timestamp: int, output) -> List[str]:
    return [
        FFMPEG_BIN,
        "-y",
        "-loglevel",
        "error",
        "-ss",
        str(timestamp),
        "-i",
        str(source),
        "-frames:v",
        "1",
        "-q:v",
        "2",
        str(output),
    ]
