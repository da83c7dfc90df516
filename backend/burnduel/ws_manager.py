"""
Менеджер WebSocket: подключения по connection_id, комнаты матчей, рассылки.
"""
import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, connection_id: str):
        self.ws = ws
        self.connection_id = connection_id


class WSManager:
    def __init__(self, send_timeout: float = 5.0):
        self.send_timeout = send_timeout
        self._by_id: dict[str, Connection] = {}
        self._rooms: dict[str, list[str]] = {}

    async def connect(self, ws: WebSocket, connection_id: str) -> None:
        if connection_id in self._by_id:
            old = self._by_id[connection_id]
            try:
                await old.ws.close(code=4000)
            except Exception:
                pass
        self._by_id[connection_id] = Connection(ws, connection_id)

    def disconnect(self, connection_id: str) -> None:
        self._by_id.pop(connection_id, None)
        for members in self._rooms.values():
            if connection_id in members:
                members.remove(connection_id)

    def join_room(self, room_id: str, connection_id: str) -> None:
        members = self._rooms.setdefault(room_id, [])
        if connection_id not in members:
            members.append(connection_id)

    def close_room(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)

    def room_members(self, room_id: str) -> list[str]:
        return list(self._rooms.get(room_id, []))

    async def _send(self, conn: Connection, payload: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(conn.ws.send_json(payload), self.send_timeout)
            return True
        except asyncio.TimeoutError:
            # Зависший клиент: закрываем, цикл приёма сам вызовет отключение
            logger.warning("send to %s timed out, closing", conn.connection_id)
            self.disconnect(conn.connection_id)
            try:
                await asyncio.wait_for(conn.ws.close(code=1011), self.send_timeout)
            except Exception:
                pass
            return False
        except Exception as e:
            logger.warning("send to %s: %s", conn.connection_id, e)
            return False

    async def send_to(self, connection_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_id.get(connection_id)
        if not conn:
            return False
        return await self._send(conn, payload)

    async def send_to_room(self, room_id: str, payload: dict[str, Any]) -> None:
        for connection_id in self.room_members(room_id):
            await self.send_to(connection_id, payload)

    async def broadcast(self, payload: dict[str, Any]) -> None:
        dead = []
        for conn in list(self._by_id.values()):
            if not await self._send(conn, payload):
                dead.append(conn)
        for conn in dead:
            self.disconnect(conn.connection_id)
