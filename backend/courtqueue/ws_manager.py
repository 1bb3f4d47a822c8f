"""
Менеджер WebSocket: подключения устройств и рассылка состояния сессии.
"""
import logging
from typing import Any

from fastapi import WebSocket

from .config import get_config
from .models import state_to_dict
from .store import SessionStore

logger = logging.getLogger(__name__)


def session_state_payload(store: SessionStore) -> dict[str, Any]:
    """Собрать payload session_state для отправки клиентам."""
    state, version, updated_at = store.snapshot()
    return {
        "type": "session_state",
        "session_id": get_config().session_id,
        "version": version,
        "updated_at": updated_at,
        "state": state_to_dict(state),
    }


class Connection:
    def __init__(self, ws: WebSocket, device_id: str):
        self.ws = ws
        self.device_id = device_id


class WSManager:
    def __init__(self, store: SessionStore):
        self.store = store
        self._by_device: dict[str, Connection] = {}
        self._all: list[Connection] = []

    @property
    def connection_count(self) -> int:
        return len(self._all)

    async def connect(self, ws: WebSocket, device_id: str) -> None:
        if device_id in self._by_device:
            old = self._by_device[device_id]
            self._all.remove(old)
            try:
                await old.ws.close(code=4000)
            except Exception as e:
                logger.debug("close stale connection %s: %s", device_id, e)
        conn = Connection(ws, device_id)
        self._by_device[device_id] = conn
        self._all.append(conn)

    def disconnect(self, device_id: str, ws: WebSocket | None = None) -> None:
        # ws задан — снимаем только это подключение, а не переподключившееся
        conn = self._by_device.get(device_id)
        if conn and (ws is None or conn.ws is ws):
            del self._by_device[device_id]
            if conn in self._all:
                self._all.remove(conn)

    async def send_to_device(self, device_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_device.get(device_id)
        if not conn:
            return False
        try:
            await conn.ws.send_json(payload)
            return True
        except Exception as e:
            logger.warning("send_to_device %s: %s", device_id, e)
            return False

    async def broadcast_state(self) -> None:
        await self._broadcast(session_state_payload(self.store))

    async def _broadcast(self, payload: dict[str, Any]) -> None:
        dead = []
        for conn in self._all:
            try:
                await conn.ws.send_json(payload)
            except Exception:
                dead.append(conn)
        for conn in dead:
            logger.info("dropping dead connection %s", conn.device_id)
            self.disconnect(conn.device_id)


manager = WSManager(SessionStore())
