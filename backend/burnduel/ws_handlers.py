"""
Обработка сообщений WebSocket: разбор кадра и передача действия контроллеру.
"""
import logging
import uuid

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from .controller import GameController
from .messages import parse_client_message

logger = logging.getLogger(__name__)


async def handle_ws_message(controller: GameController, raw: str, connection_id: str) -> bool:
    """
    Обрабатывает одно сообщение клиента.
    Возвращает False если соединение нужно закрыть.
    """
    try:
        msg = parse_client_message(raw)
    except ValidationError as e:
        logger.warning("WS: invalid message from %s: %s", connection_id, e.errors(include_url=False))
        return True
    logger.info("WS: msg from %s type=%s", connection_id, msg.type)
    await controller.dispatch(connection_id, msg)
    return True


async def ws_loop(ws: WebSocket, controller: GameController) -> None:
    """
    Регистрирует подключение, сообщает клиенту его connection_id и
    обрабатывает сообщения до закрытия сокета.
    """
    manager = controller.manager
    connection_id = None
    try:
        await ws.accept()
        connection_id = uuid.uuid4().hex
        await manager.connect(ws, connection_id)
        logger.info("WS: accepted connection_id=%s", connection_id)
        await manager.send_to(connection_id, {"type": "connected", "connection_id": connection_id})
        while True:
            raw = await ws.receive_text()
            if not await handle_ws_message(controller, raw, connection_id):
                break
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s reason=%s connection_id=%s", e.code, e.reason or "", connection_id)
    except Exception as e:
        logger.exception("WS: error connection_id=%s: %s", connection_id, e)
    finally:
        if connection_id:
            # Сначала убираем сокет, чтобы сопернику не слать в закрытое соединение
            manager.disconnect(connection_id)
            await controller.disconnect(connection_id)
            logger.info("WS: disconnected connection_id=%s", connection_id)
