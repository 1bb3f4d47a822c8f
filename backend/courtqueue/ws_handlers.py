"""
Обработка сообщений WebSocket: операции над сессией.
После каждой применённой операции новое состояние рассылается всем устройствам.
"""
import json
import logging
from typing import Any, Callable

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from . import mutators
from .errors import ValidationError
from .matchmaker import auto_pick
from .models import generate_id
from .store import result_applied
from .ws_manager import manager, session_state_payload

logger = logging.getLogger(__name__)


def _field(data: dict, key: str, kind: type, required: bool = True) -> Any:
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationError(f"missing field {key!r}", field=key)
        return None
    if not isinstance(value, kind) or isinstance(value, bool):
        raise ValidationError(f"{key} must be {kind.__name__}", field=key)
    return value


# type сообщения -> (операция, аргументы из сообщения)
OPERATIONS: dict[str, Callable[[dict], tuple[Callable, tuple]]] = {
    "add_player": lambda d: (mutators.add_player, (_field(d, "name", str), _field(d, "skill", str))),
    "batch_add_players": lambda d: (mutators.batch_add_players, (_field(d, "text", str),)),
    "delete_player": lambda d: (mutators.delete_player, (_field(d, "player_id", str),)),
    "delete_all_players": lambda d: (mutators.delete_all_players, ()),
    "enqueue": lambda d: (mutators.enqueue, (_field(d, "player_id", str),)),
    "dequeue": lambda d: (mutators.dequeue, (_field(d, "player_id", str),)),
    "start_game": lambda d: (mutators.start_game, ()),
    "end_game": lambda d: (mutators.end_game, (_field(d, "court", int),)),
    "change_courts": lambda d: (mutators.change_courts, (_field(d, "courts", int),)),
    "reset_session": lambda d: (mutators.reset_session, (_field(d, "courts", int, required=False),)),
    "auto_pick": lambda d: (auto_pick, ()),
}


def error_payload(op: str | None, error: ValidationError) -> dict[str, Any]:
    payload = {"type": "error", "op": op, "message": str(error)}
    if error.line is not None:
        payload["line"] = error.line
    return payload


async def handle_ws_message(ws: WebSocket, raw: str, device_id: str) -> bool:
    """
    Обрабатывает одно сообщение от устройства.
    Возвращает False если соединение нужно закрыть.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON from %s: %s", device_id, e)
        return True
    if not isinstance(data, dict):
        logger.warning("WS: non-object message from %s", device_id)
        return True
    t = data.get("type")
    logger.info("WS: msg from %s type=%s", device_id, t)
    build = OPERATIONS.get(t)
    if build is None:
        await manager.send_to_device(
            device_id, error_payload(t, ValidationError(f"unknown message type {t!r}", field="type"))
        )
        return True
    try:
        operation, args = build(data)
    except ValidationError as e:
        await manager.send_to_device(device_id, error_payload(t, e))
        return True

    result = manager.store.apply(operation, *args)

    if t == "auto_pick":
        await manager.send_to_device(
            device_id,
            {"type": "auto_pick", "picked": result.picked, "fallback": result.fallback_used},
        )
    error = getattr(result, "error", None)
    if error is not None:
        await manager.send_to_device(device_id, error_payload(t, error))
    elif result_applied(result):
        await manager.broadcast_state()
    else:
        await manager.send_to_device(device_id, {"type": "noop", "op": t})
    return True


async def ws_session_loop(ws: WebSocket) -> None:
    """
    Подключение устройства: отправить текущее состояние, дальше цикл приёма сообщений.
    """
    device_id = None
    try:
        await ws.accept()
        device_id = ws.query_params.get("device_id") or generate_id()
        await manager.connect(ws, device_id)
        logger.info("WS: connected device_id=%s", device_id)
        await manager.send_to_device(device_id, session_state_payload(manager.store))
        while True:
            msg = await ws.receive_text()
            if not await handle_ws_message(ws, msg, device_id):
                break
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s reason=%s device_id=%s", e.code, e.reason or "", device_id)
    except Exception as e:
        logger.exception("WS: error device_id=%s: %s", device_id, e)
    finally:
        if device_id:
            manager.disconnect(device_id, ws)
            logger.info("WS: disconnected device_id=%s", device_id)
