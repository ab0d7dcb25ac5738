import logging
import threading
import uuid
from typing import Optional

from columncraft.core.config import get_settings
from columncraft.services.runtime import TutorRuntime

logger = logging.getLogger("columncraft.player_store")


class PlayerNotFoundError(KeyError):
    pass


class PlayerStore:
    def create(self) -> TutorRuntime:
        raise NotImplementedError

    def get(self, player_id: str) -> TutorRuntime:
        raise NotImplementedError

    def delete(self, player_id: str) -> None:
        raise NotImplementedError

    def completed_boards(self, player_id: str) -> int:
        raise NotImplementedError


class InMemoryPlayerStore(PlayerStore):
    """Runtimes live until deleted or the process exits; progress is not persisted."""

    def __init__(self):
        self._data: dict[str, TutorRuntime] = {}
        self._completed: dict[str, int] = {}
        self._lock = threading.Lock()

    def create(self, player_id: Optional[str] = None) -> TutorRuntime:
        settings = get_settings()
        player_id = player_id or uuid.uuid4().hex
        runtime = TutorRuntime(
            player_id,
            columns=settings.column_capacity,
            settle_delay_ms=settings.settle_delay_ms,
            training_delay_ms=settings.training_advance_delay_ms,
            on_complete=self._record_completion,
        )
        with self._lock:
            self._data[player_id] = runtime
            self._completed[player_id] = 0
        logger.info("player created: %s", player_id)
        return runtime

    def get(self, player_id: str) -> TutorRuntime:
        try:
            return self._data[player_id]
        except KeyError:
            raise PlayerNotFoundError(player_id) from None

    def delete(self, player_id: str) -> None:
        with self._lock:
            if self._data.pop(player_id, None) is None:
                raise PlayerNotFoundError(player_id)
            self._completed.pop(player_id, None)
        logger.info("player deleted: %s", player_id)

    def completed_boards(self, player_id: str) -> int:
        return self._completed.get(player_id, 0)

    def _record_completion(self, runtime: TutorRuntime) -> None:
        with self._lock:
            if runtime.player_id not in self._data:
                return
            self._completed[runtime.player_id] += 1
            total = self._completed[runtime.player_id]
        logger.info("player %s completed board #%d", runtime.player_id, total)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._completed.clear()


PLAYER_STORE = InMemoryPlayerStore()


def get_player_store() -> PlayerStore:
    return PLAYER_STORE
