"""
Хранилище текущего состояния сессии (in-memory).
Последний записавший побеждает; каждая запись получает новую версию
и рассылается подключённым устройствам уровнем выше.
"""
import logging
import threading
import time
from typing import Any, Callable

from .config import get_config
from .invariants import check_invariants
from .models import SessionState, initial_state

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, default_courts: int | None = None):
        if default_courts is None:
            default_courts = get_config().default_courts
        self._default_courts = default_courts
        self._state: SessionState | None = None
        self._version = 0
        self._updated_at: float | None = None
        self._lock = threading.RLock()

    @property
    def version(self) -> int:
        return self._version

    @property
    def updated_at(self) -> float | None:
        return self._updated_at

    def read(self) -> SessionState:
        """Текущее состояние; при первом обращении — сессия по умолчанию."""
        with self._lock:
            if self._state is None:
                logger.info("initializing session with %d courts", self._default_courts)
                state = initial_state(self._default_courts)
                check_invariants(state)
                self._store(state)
            return self._state

    def snapshot(self) -> tuple[SessionState, int, float | None]:
        """Состояние, версия и время записи, согласованные между собой."""
        with self._lock:
            return self.read(), self._version, self._updated_at

    def commit(self, state: SessionState, expected_version: int | None = None) -> bool:
        """
        Заменить состояние целиком. Если передан expected_version и он
        устарел, запись отклоняется (False). Несогласованное состояние —
        InvariantViolation, это ошибка программы.
        """
        check_invariants(state)
        with self._lock:
            if expected_version is not None and expected_version != self._version:
                logger.warning(
                    "commit conflict: expected version %d, current %d",
                    expected_version, self._version,
                )
                return False
            self._store(state)
        return True

    def apply(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Прочитать, применить мутатор или auto_pick и записать результат,
        всё под одной блокировкой. Возвращает результат операции.
        """
        with self._lock:
            result = operation(self.read(), *args, **kwargs)
            if result_applied(result):
                self.commit(result.state)
            return result

    def _store(self, state: SessionState) -> None:
        self._state = state
        self._version += 1
        self._updated_at = time.time()
        logger.debug("committed version %d", self._version)


def result_applied(result: Any) -> bool:
    # MutationResult.applied либо PickResult.picked
    applied = getattr(result, "applied", None)
    if applied is not None:
        return applied
    return getattr(result, "picked", 0) > 0
