import logging
import queue
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()

DEFAULT_KILL_TIMEOUT = 10.0


class WorkerPool:
    """Pool fijo de hilos que consume una cola FIFO sin límite.

    `submit` nunca bloquea al llamador. Cada tarea ocupa un hilo de principio
    a fin.
    """

    def __init__(self, size: int = 4, name: str = "video-worker"):
        if size < 1:
            raise ValueError("El pool necesita al menos un worker")
        self.size = size
        self.name = name
        self._queue = queue.Queue()
        self._threads = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self):
        with self._lock:
            if self._threads:
                return
            for i in range(self.size):
                thread = threading.Thread(target=self._worker_loop, name=f"{self.name}-{i}", daemon=True)
                thread.start()
                self._threads.append(thread)
        logger.info(f"Pool '{self.name}' iniciado con {self.size} workers")

    def submit(self, fn: Callable, *args):
        with self._lock:
            if self._closed:
                raise RuntimeError(f"El pool '{self.name}' ya no acepta tareas")
            self._queue.put((fn, args))

    def _worker_loop(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args = item
                try:
                    fn(*args)
                except Exception as e:
                    logger.exception(f"Error no controlado en {threading.current_thread().name}: {e}")
            finally:
                self._queue.task_done()

    def _join_until(self, deadline: float) -> list:
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        return [t for t in self._threads if t.is_alive()]

    def shutdown(
        self,
        grace_period: float = 60.0,
        on_timeout: Optional[Callable[[], None]] = None,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> bool:
        """
        Deja de aceptar tareas y espera a que la cola se vacíe.

        Si tras `grace_period` siguen workers vivos se llama `on_timeout` (que
        debe interrumpir el trabajo en curso) y se espera a lo sumo
        `kill_timeout` más, sin volver a esperar `grace_period`.
        Retorna True si todos los workers terminaron.
        """
        with self._lock:
            if self._closed:
                return not any(t.is_alive() for t in self._threads)
            self._closed = True
            # los centinelas quedan detrás de las tareas ya encoladas
            for _ in self._threads:
                self._queue.put(_STOP)

        logger.info(f"Apagando pool '{self.name}' ({self.pending} tarea(s) en cola)")
        alive = self._join_until(time.monotonic() + grace_period)
        if not alive:
            logger.info(f"Pool '{self.name}' detenido")
            return True

        logger.warning(f"{len(alive)} worker(s) siguen activos tras {grace_period}s, forzando interrupción")
        if on_timeout is not None:
            on_timeout()

        alive = self._join_until(time.monotonic() + kill_timeout)
        if alive:
            logger.warning(f"El pool '{self.name}' no terminó correctamente: {[t.name for t in alive]}")
            return False
        logger.info(f"Pool '{self.name}' detenido tras interrupción forzada")
        return True
