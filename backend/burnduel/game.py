"""
Состояние матча и правила: колода, очередь хода, раунды, итог матча.
Все методы синхронные: проверка и изменение состояния происходят за один вызов.
"""
import random
from dataclasses import dataclass, field
from enum import Enum

from .constants import CARD_BURN, CARD_SAFE, DECK_SIZE


class MatchStatus(str, Enum):
    PLAYING = "playing"
    FINISHED = "finished"


class RoundPhase(str, Enum):
    AWAITING_ACTION = "awaiting_action"
    ROUND_RESOLVED = "round_resolved"  # раунд сыгран, следующий ещё не роздан


def deal_deck(rng: random.Random) -> list[str]:
    """Пять безопасных карт и одна горящая на случайной позиции из шести."""
    deck = [CARD_SAFE] * (DECK_SIZE - 1)
    deck.insert(rng.randrange(DECK_SIZE), CARD_BURN)
    return deck


def _empty_opened() -> list[int | None]:
    return [None] * DECK_SIZE


@dataclass
class Seat:
    connection_id: str
    name: str


@dataclass
class SlotResult:
    slot: int
    by_index: int
    card: str
    round_winner: int | None = None
    match_over: bool = False

    @property
    def is_burn(self) -> bool:
        return self.card == CARD_BURN


@dataclass
class Match:
    room_id: str
    seats: tuple[Seat, Seat]
    stake: int
    rounds: int
    current_turn: int
    deck: list[str]
    current_round: int = 1
    round_wins: list[int] = field(default_factory=lambda: [0, 0])
    opened: list[int | None] = field(default_factory=_empty_opened)
    status: MatchStatus = MatchStatus.PLAYING
    phase: RoundPhase = RoundPhase.AWAITING_ACTION
    winner_index: int | None = None
    shuffle_used: list[bool] = field(default_factory=lambda: [False, False])
    concluded: bool = False
    rematch_accepted: list[bool] | None = None
    returned_to_lobby: bool = False  # после матча игрокам уже отправили lobby

    @classmethod
    def start(cls, room_id: str, seats: tuple[Seat, Seat], stake: int, rounds: int,
              rng: random.Random) -> "Match":
        return cls(
            room_id=room_id,
            seats=seats,
            stake=stake,
            rounds=rounds,
            current_turn=rng.randrange(2),
            deck=deal_deck(rng),
        )

    @property
    def wins_needed(self) -> int:
        return self.rounds // 2 + 1

    @property
    def connection_ids(self) -> list[str]:
        return [s.connection_id for s in self.seats]

    @property
    def current_turn_id(self) -> str:
        return self.seats[self.current_turn].connection_id

    def seat_of(self, connection_id: str) -> int | None:
        for i, seat in enumerate(self.seats):
            if seat.connection_id == connection_id:
                return i
        return None

    def is_decided(self) -> bool:
        a, b = self.round_wins
        return max(a, b) >= self.wins_needed or a + b == self.rounds

    def accepts_actions(self) -> bool:
        return (
            self.status == MatchStatus.PLAYING
            and not self.concluded
            and self.phase == RoundPhase.AWAITING_ACTION
        )

    def _redeal(self, rng: random.Random) -> None:
        self.deck = deal_deck(rng)
        self.opened = _empty_opened()

    def open_slot(self, connection_id: str, slot: int) -> SlotResult | None:
        """
        Открыть карту. Возвращает None, если ход невозможен
        (не твой ход, карта уже открыта, раунд/матч закрыт).
        """
        if not self.accepts_actions():
            return None
        if self.seat_of(connection_id) != self.current_turn:
            return None
        if not 0 <= slot < DECK_SIZE or self.opened[slot] is not None:
            return None
        actor = self.current_turn
        self.opened[slot] = actor
        result = SlotResult(slot=slot, by_index=actor, card=self.deck[slot])
        if not result.is_burn:
            self.current_turn = 1 - actor
            return result
        # Открывший горящую карту проигрывает раунд; следующий раунд начинает победитель
        winner = 1 - actor
        self.round_wins[winner] += 1
        self.current_turn = winner
        self.phase = RoundPhase.ROUND_RESOLVED
        result.round_winner = winner
        if self.is_decided():
            self.status = MatchStatus.FINISHED
            self.concluded = True
            self.winner_index = 0 if self.round_wins[0] > self.round_wins[1] else 1
            self.rematch_accepted = [False, False]
            result.match_over = True
        return result

    def start_next_round(self, rng: random.Random) -> bool:
        if self.status != MatchStatus.PLAYING or self.phase != RoundPhase.ROUND_RESOLVED:
            return False
        self.current_round += 1
        self._redeal(rng)
        self.shuffle_used = [False, False]
        self.phase = RoundPhase.AWAITING_ACTION
        return True

    def use_shuffle(self, connection_id: str, rng: random.Random) -> bool:
        """Перетасовка: раз за раунд, только в свой ход, ход не передаётся."""
        if not self.accepts_actions():
            return False
        idx = self.seat_of(connection_id)
        if idx is None or idx != self.current_turn or self.shuffle_used[idx]:
            return False
        self.shuffle_used[idx] = True
        self._redeal(rng)
        return True

    def forfeit(self, loser_index: int) -> None:
        """Досрочное завершение: соперник покинул игру."""
        self.status = MatchStatus.FINISHED
        self.concluded = True
        self.phase = RoundPhase.ROUND_RESOLVED
        self.winner_index = 1 - loser_index

    def restart(self, stake: int, rng: random.Random) -> None:
        self.stake = stake
        self.current_round = 1
        self.round_wins = [0, 0]
        self.status = MatchStatus.PLAYING
        self.phase = RoundPhase.AWAITING_ACTION
        self.winner_index = None
        self.concluded = False
        self.rematch_accepted = None
        self.returned_to_lobby = False
        self.shuffle_used = [False, False]
        self._redeal(rng)
        self.current_turn = rng.randrange(2)


def start_game_payload(m: Match) -> dict:
    """Полный снимок для start_game (и после реванша)."""
    return {
        "type": "start_game",
        "room_id": m.room_id,
        "players": [s.name for s in m.seats],
        "connection_ids": m.connection_ids,
        "stake": m.stake,
        "rounds": m.rounds,
        "current_turn_id": m.current_turn_id,
        "shuffle_used": list(m.shuffle_used),
        "round_wins": list(m.round_wins),
        "current_round": m.current_round,
    }


def turn_payload(m: Match) -> dict:
    return {
        "type": "turn",
        "current_turn_id": m.current_turn_id,
        "shuffle_used": list(m.shuffle_used),
    }


def card_opened_payload(m: Match, r: SlotResult) -> dict:
    return {
        "type": "card_opened",
        "slot": r.slot,
        "by": m.seats[r.by_index].name,
        "value": r.card,
    }


def round_over_payload(m: Match, r: SlotResult) -> dict:
    return {
        "type": "round_over",
        "round": m.current_round,
        "winner": m.seats[r.round_winner].name,
        "round_wins": list(m.round_wins),
    }


def new_round_payload(m: Match) -> dict:
    return {
        "type": "new_round",
        "round": m.current_round,
        "current_turn_id": m.current_turn_id,
        "round_wins": list(m.round_wins),
    }


def deck_shuffled_payload(m: Match, by_index: int) -> dict:
    return {
        "type": "deck_shuffled",
        "by": m.seats[by_index].name,
        "shuffle_used": list(m.shuffle_used),
    }


def game_over_payload(m: Match, reason: str = "rounds") -> dict:
    return {
        "type": "game_over",
        "match_winner": m.seats[m.winner_index].name,
        "round_wins": list(m.round_wins),
        "reason": reason,
    }
