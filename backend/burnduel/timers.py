"""
Отложенные задачи по комнатам: паузы между раундами и после матча.
На комнату не больше одной ожидающей задачи.
"""
import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RoomTimers:
    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    def pending(self, room_id: str) -> bool:
        task = self._tasks.get(room_id)
        return task is not None and not task.done()

    def schedule(self, room_id: str, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        """Запланировать callback через delay секунд, заменив прежнюю задачу комнаты."""
        self.cancel(room_id)
        self._tasks[room_id] = asyncio.create_task(self._run(room_id, delay, callback))

    def cancel(self, room_id: str) -> None:
        task = self._tasks.pop(room_id, None)
        # Задача может отменять сама себя, если её callback закрывает комнату
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for room_id in list(self._tasks):
            self.cancel(room_id)

    async def drain(self) -> None:
        """Дождаться всех задач, включая запланированные изнутри callback."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def _run(self, room_id: str, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        try:
            await asyncio.sleep(delay)
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("timer for %s failed", room_id)
        finally:
            if self._tasks.get(room_id) is asyncio.current_task():
                del self._tasks[room_id]
