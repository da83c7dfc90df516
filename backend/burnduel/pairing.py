"""
Очередь открытых предложений игры и создание матчей (in-memory).
Проверка и списание ставок при join выполняются одним синхронным вызовом.
"""
import logging
import random
import uuid
from dataclasses import asdict, dataclass

from .constants import ALLOWED_ROUND_COUNTS
from .game import Match, Seat
from .registry import UserRegistry

logger = logging.getLogger(__name__)


class MatchmakingError(Exception):
    """Отказ с сообщением для пользователя."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class MatchOffer:
    id: str
    creator_id: str
    creator_name: str
    stake: int
    rounds: int


def room_id_for(offer: MatchOffer) -> str:
    return f"room_{offer.id}"


class OfferQueue:
    def __init__(self):
        self._offers: list[MatchOffer] = []

    def __len__(self) -> int:
        return len(self._offers)

    def snapshot(self) -> list[dict]:
        return [asdict(o) for o in self._offers]

    def get(self, offer_id: str) -> MatchOffer | None:
        for o in self._offers:
            if o.id == offer_id:
                return o
        return None

    def create(self, users: UserRegistry, creator_id: str, stake: int, rounds: int) -> MatchOffer:
        user = users.get(creator_id)
        if user is None:
            raise MatchmakingError("Сначала войдите в игру.")
        if user.busy:
            raise MatchmakingError("Вы уже участвуете в игре.")
        if stake <= 0 or user.balance < stake:
            raise MatchmakingError("Недостаточно баланса для ставки!")
        if rounds not in ALLOWED_ROUND_COUNTS:
            raise MatchmakingError("Некорректное количество раундов!")
        offer = MatchOffer(
            id=uuid.uuid4().hex,
            creator_id=creator_id,
            creator_name=user.name,
            stake=stake,
            rounds=rounds,
        )
        self._offers.append(offer)
        logger.info("offer %s created by %s: stake=%s rounds=%s", offer.id, creator_id, stake, rounds)
        return offer

    def cancel(self, users: UserRegistry, creator_id: str) -> bool:
        """Убрать самое старое предложение игрока. True если было что убирать."""
        for i, o in enumerate(self._offers):
            if o.creator_id == creator_id:
                self._offers.pop(i)
                users.set_busy(creator_id, False)
                logger.info("offer %s cancelled", o.id)
                return True
        return False

    def remove_all_by(self, creator_id: str) -> int:
        """Убрать все предложения игрока (при отключении). Возвращает количество."""
        before = len(self._offers)
        self._offers = [o for o in self._offers if o.creator_id != creator_id]
        return before - len(self._offers)

    def join(self, users: UserRegistry, offer_id: str, joiner_id: str, rng: random.Random) -> Match:
        """
        Принять предложение: проверить обоих, списать ставки, убрать предложение
        из очереди и вернуть новый матч. Либо всё, либо ничего.
        """
        offer = self.get(offer_id)
        if offer is None:
            raise MatchmakingError("Игра не найдена.")
        joiner = users.get(joiner_id)
        if joiner is None:
            raise MatchmakingError("Сначала войдите в игру.")
        if offer.creator_id == joiner_id:
            raise MatchmakingError("Нельзя присоединиться к своей игре.")
        creator = users.get(offer.creator_id)
        if creator is None:
            raise MatchmakingError("Создатель игры уже вышел.")
        if joiner.busy or creator.busy:
            raise MatchmakingError("Игрок уже участвует в другой игре.")
        if joiner.balance < offer.stake:
            raise MatchmakingError("Недостаточно баланса!")
        if creator.balance < offer.stake:
            raise MatchmakingError("У создателя игры недостаточно баланса.")

        users.debit(creator.connection_id, offer.stake)
        users.debit(joiner.connection_id, offer.stake)
        creator.busy = True
        joiner.busy = True
        # Игрок в матче не держит открытых предложений
        self.remove_all_by(creator.connection_id)
        self.remove_all_by(joiner.connection_id)
        match = Match.start(
            room_id=room_id_for(offer),
            seats=(Seat(creator.connection_id, creator.name), Seat(joiner.connection_id, joiner.name)),
            stake=offer.stake,
            rounds=offer.rounds,
            rng=rng,
        )
        logger.info("offer %s joined by %s -> %s", offer.id, joiner_id, match.room_id)
        return match
