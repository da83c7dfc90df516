"""Общие утилиты тестов: фейковый сокет, конфиг, быстрый старт матча."""
import random
from types import SimpleNamespace
from typing import Any

from burnduel.constants import CARD_BURN, CARD_SAFE, DECK_SIZE
from burnduel.controller import GameController
from burnduel.game import Match
from burnduel.messages import CreateGame, JoinGame, Login
from burnduel.ws_manager import WSManager


class MockWebSocket:
    """Записывает всё, что ему отправили."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self.close_code: int | None = None

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.closed:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.close_code = code

    def of_type(self, msg_type: str) -> list[dict[str, Any]]:
        return [p for p in self.sent if p["type"] == msg_type]

    def types(self) -> list[str]:
        return [p["type"] for p in self.sent]

    def clear(self) -> None:
        self.sent.clear()


def make_config(**overrides):
    values = {
        "allowed_origins": ["*"],
        "log_level": "INFO",
        "starting_balance": 1000,
        "round_pause_sec": 0.0,
        "match_end_pause_sec": 0.0,
        "rematch_window_sec": 0.0,
        "send_timeout_sec": 1.0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def make_controller(seed: int = 7, **overrides) -> GameController:
    config = make_config(**overrides)
    return GameController(WSManager(config.send_timeout_sec), config, random.Random(seed))


def deck_with_burn_at(slot: int) -> list[str]:
    deck = [CARD_SAFE] * DECK_SIZE
    deck[slot] = CARD_BURN
    return deck


async def connect(controller: GameController, connection_id: str, name: str | None = None) -> MockWebSocket:
    ws = MockWebSocket()
    await controller.manager.connect(ws, connection_id)
    if name is not None:
        await controller.dispatch(connection_id, Login(type="login", name=name))
    return ws


async def start_match(controller: GameController, stake: int = 100, rounds: int = 3):
    """Alice (a) создаёт игру, Bob (b) присоединяется. Возвращает (match, ws_a, ws_b)."""
    ws_a = await connect(controller, "a", "Alice")
    ws_b = await connect(controller, "b", "Bob")
    await controller.dispatch("a", CreateGame(type="create_game", stake=stake, rounds=rounds))
    offer_id = controller.offers.snapshot()[-1]["id"]
    await controller.dispatch("b", JoinGame(type="join_game", offer_id=offer_id))
    match: Match = controller.matches[f"room_{offer_id}"]
    return match, ws_a, ws_b
