import enum


class VideoStatus(str, enum.Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


class SegmentStatus(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    UNLISTED = "unlisted"


# uploaded -> processing -> ready | failed; ready y failed son terminales
ALLOWED_TRANSITIONS = {
    VideoStatus.UPLOADED: {VideoStatus.PROCESSING},
    VideoStatus.PROCESSING: {VideoStatus.READY, VideoStatus.FAILED},
    VideoStatus.READY: set(),
    VideoStatus.FAILED: set(),
}


class InvalidStatusTransition(ValueError):
    def __init__(self, current: VideoStatus, target: VideoStatus):
        super().__init__(f"Transición inválida: {current.value} -> {target.value}")
        self.current = current
        self.target = target


def ensure_transition(current, target) -> VideoStatus:
    """Valida el paso de `current` a `target` y retorna el nuevo estado."""
    current = VideoStatus(current)
    target = VideoStatus(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current, target)
    return target
