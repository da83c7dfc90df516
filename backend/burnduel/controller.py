"""
Контроллер игры: пользователи, очередь предложений, матчи, таймеры.
Каждое действие клиента и каждый таймер выполняются целиком под одной
блокировкой, включая рассылку уведомлений.
"""
import asyncio
import logging
import random

from . import messages as m
from . import rematch
from .config import get_config
from .constants import PAYOUT_MULTIPLIER
from .game import (
    Match,
    card_opened_payload,
    deck_shuffled_payload,
    game_over_payload,
    new_round_payload,
    round_over_payload,
    start_game_payload,
    turn_payload,
)
from .pairing import MatchmakingError, OfferQueue
from .registry import UserRegistry
from .timers import RoomTimers
from .ws_manager import WSManager

logger = logging.getLogger(__name__)


class GameController:
    def __init__(self, manager: WSManager, config=None, rng: random.Random | None = None):
        self.manager = manager
        self.config = config or get_config()
        self.rng = rng or random.Random()
        self.users = UserRegistry(self.config.starting_balance)
        self.offers = OfferQueue()
        self.matches: dict[str, Match] = {}
        self.timers = RoomTimers()
        self._lock = asyncio.Lock()
        self._handlers = {
            m.Login: self._login,
            m.GetBalance: self._get_balance,
            m.ListGames: self._list_games,
            m.CreateGame: self._create_game,
            m.JoinGame: self._join_game,
            m.CancelPendingGame: self._cancel_pending_game,
            m.MakeMove: self._make_move,
            m.ShuffleDeck: self._shuffle_deck,
            m.AcceptRevansh: self._accept_revansh,
        }

    async def dispatch(self, connection_id: str, msg: m.ClientMessage) -> None:
        handler = self._handlers[type(msg)]
        async with self._lock:
            # Без login доступны только login и список игр
            if not isinstance(msg, (m.Login, m.ListGames)) and connection_id not in self.users:
                return
            await handler(connection_id, msg)

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            await self._disconnect(connection_id)

    # ---- уведомления ----

    async def _send_balance(self, connection_id: str) -> None:
        user = self.users.get(connection_id)
        if user:
            await self.manager.send_to(connection_id, {"type": "balance", "balance": user.balance})

    async def _broadcast_offers(self) -> None:
        await self.manager.broadcast({"type": "pending_games", "games": self.offers.snapshot()})

    async def _send_error(self, connection_id: str, message: str) -> None:
        await self.manager.send_to(connection_id, {"type": "error_msg", "msg": message})

    async def _send_start(self, match: Match) -> None:
        payload = start_game_payload(match)
        for cid in match.connection_ids:
            await self.manager.send_to(cid, payload)

    # ---- реестр ----

    async def _login(self, connection_id: str, msg: m.Login) -> None:
        user = self.users.login(connection_id, msg.name)
        await self.manager.send_to(connection_id, {"type": "balance", "balance": user.balance})
        await self.manager.send_to(connection_id, {"type": "lobby"})
        await self.manager.send_to(connection_id, {"type": "pending_games", "games": self.offers.snapshot()})

    async def _get_balance(self, connection_id: str, msg: m.GetBalance) -> None:
        await self._send_balance(connection_id)

    # ---- очередь ----

    async def _list_games(self, connection_id: str, msg: m.ListGames) -> None:
        await self.manager.send_to(connection_id, {"type": "pending_games", "games": self.offers.snapshot()})

    async def _create_game(self, connection_id: str, msg: m.CreateGame) -> None:
        try:
            self.offers.create(self.users, connection_id, msg.stake, msg.rounds)
        except MatchmakingError as e:
            await self._send_error(connection_id, e.message)
            return
        await self._broadcast_offers()

    async def _cancel_pending_game(self, connection_id: str, msg: m.CancelPendingGame) -> None:
        if self.offers.cancel(self.users, connection_id):
            await self._broadcast_offers()

    async def _join_game(self, connection_id: str, msg: m.JoinGame) -> None:
        try:
            match = self.offers.join(self.users, msg.offer_id, connection_id, self.rng)
        except MatchmakingError as e:
            await self._send_error(connection_id, e.message)
            return
        self.matches[match.room_id] = match
        for cid in match.connection_ids:
            self.manager.join_room(match.room_id, cid)
        await self._broadcast_offers()
        await self._send_start(match)

    # ---- матч ----

    def _playing_match(self, room_id: str) -> Match | None:
        match = self.matches.get(room_id)
        if match is None or not match.accepts_actions():
            return None
        return match

    async def _make_move(self, connection_id: str, msg: m.MakeMove) -> None:
        match = self._playing_match(msg.room_id)
        if match is None:
            return
        result = match.open_slot(connection_id, msg.slot)
        if result is None:
            return
        room = match.room_id
        await self.manager.send_to_room(room, card_opened_payload(match, result))
        if not result.is_burn:
            await self.manager.send_to_room(room, turn_payload(match))
            return
        logger.info("%s: round %s won by seat %s, wins=%s",
                    room, match.current_round, result.round_winner, match.round_wins)
        await self.manager.send_to_room(room, round_over_payload(match, result))
        if result.match_over:
            await self._settle(match)
        else:
            self.timers.schedule(room, self.config.round_pause_sec, lambda: self._deal_next_round(room))

    async def _shuffle_deck(self, connection_id: str, msg: m.ShuffleDeck) -> None:
        match = self._playing_match(msg.room_id)
        if match is None or not match.use_shuffle(connection_id, self.rng):
            return
        await self.manager.send_to_room(match.room_id, deck_shuffled_payload(match, match.current_turn))
        await self.manager.send_to_room(match.room_id, turn_payload(match))

    async def _deal_next_round(self, room_id: str) -> None:
        async with self._lock:
            match = self.matches.get(room_id)
            if match is None or not match.start_next_round(self.rng):
                return
            await self.manager.send_to_room(room_id, new_round_payload(match))
            await self.manager.send_to_room(room_id, turn_payload(match))

    async def _settle(self, match: Match, reason: str = "rounds") -> None:
        """Выплата победителю и освобождение игроков."""
        winner_id = match.connection_ids[match.winner_index]
        self.users.credit(winner_id, match.stake * PAYOUT_MULTIPLIER)
        for cid in match.connection_ids:
            self.users.set_busy(cid, False)
        logger.info("%s: match won by %s, stake=%s, reason=%s", match.room_id, winner_id, match.stake, reason)
        await self.manager.send_to_room(match.room_id, game_over_payload(match, reason))
        if reason != "rounds":
            return
        if rematch.can_offer_rematch(match, self.users):
            await self.manager.send_to_room(match.room_id, rematch.rematch_offer_payload(match))
        room = match.room_id
        self.timers.schedule(room, self.config.match_end_pause_sec, lambda: self._return_to_lobby(room))

    async def _return_to_lobby(self, room_id: str) -> None:
        async with self._lock:
            match = self.matches.get(room_id)
            if match is None or not match.concluded:
                return
            for cid in match.connection_ids:
                await self._send_balance(cid)
                await self.manager.send_to(cid, {"type": "lobby"})
            match.returned_to_lobby = True
            self.timers.schedule(room_id, self.config.rematch_window_sec, lambda: self._expire(room_id))

    async def _expire(self, room_id: str) -> None:
        async with self._lock:
            match = self.matches.get(room_id)
            if match is not None and match.concluded:
                self._evict(room_id)

    def _evict(self, room_id: str) -> None:
        self.timers.cancel(room_id)
        self.matches.pop(room_id, None)
        self.manager.close_room(room_id)
        logger.info("%s: evicted", room_id)

    # ---- реванш ----

    async def _accept_revansh(self, connection_id: str, msg: m.AcceptRevansh) -> None:
        match = self.matches.get(msg.room_id)
        if match is None or not rematch.accept(match, connection_id):
            return
        if not rematch.start(match, self.users, self.rng):
            return
        self.timers.cancel(match.room_id)
        await self._send_start(match)

    # ---- отключение ----

    async def _disconnect(self, connection_id: str) -> None:
        self.users.remove(connection_id)
        if self.offers.remove_all_by(connection_id):
            await self._broadcast_offers()
        for match in [x for x in self.matches.values() if x.seat_of(connection_id) is not None]:
            seat = match.seat_of(connection_id)
            other_id = match.connection_ids[1 - seat]
            if not match.concluded:
                # Ушедший игрок проигрывает матч
                match.forfeit(seat)
                await self._settle(match, reason="opponent_left")
            self._evict(match.room_id)
            other = self.users.get(other_id)
            if other and not other.busy and not match.returned_to_lobby:
                await self._send_balance(other_id)
                await self.manager.send_to(other_id, {"type": "lobby"})
        logger.info("disconnect: %s", connection_id)
