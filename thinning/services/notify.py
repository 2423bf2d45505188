from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from thinning.core.errors import NotificationFailure
from thinning.models.measurement import MeasurementDTO

logger = logging.getLogger(__name__)

WriteObserver = Callable[[MeasurementDTO], None]


class WriteNotifier:
    """Observers called synchronously after every successful write.

    Observers run in subscription order. The first one that raises stops the
    fan-out and surfaces as ``NotificationFailure``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: list[WriteObserver] = []

    def subscribe(self, observer: WriteObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def unsubscribe(self, observer: WriteObserver) -> None:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                pass

    def on_write(self, observer: WriteObserver | None) -> None:
        """Replace every observer with ``observer`` (or clear them on ``None``)."""
        with self._lock:
            self._observers = [observer] if observer is not None else []

    def has_observers(self) -> bool:
        with self._lock:
            return bool(self._observers)

    def notify(self, dto: MeasurementDTO) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(dto)
            except Exception as e:
                logger.exception(
                    "Write observer failed for resource %s; value is already stored",
                    dto.resource_id,
                )
                raise NotificationFailure(
                    f"Write notification failed for resource {dto.resource_id}: {e}",
                    measurement=dto,
                ) from e
