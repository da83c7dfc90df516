"""
Реванш x2: оба игрока соглашаются, матч перезапускается на удвоенную ставку.
"""
import logging
import random

from .constants import REMATCH_STAKE_MULTIPLIER
from .game import Match
from .registry import UserRegistry

logger = logging.getLogger(__name__)


def next_stake(m: Match) -> int:
    return m.stake * REMATCH_STAKE_MULTIPLIER


def rematch_offer_payload(m: Match) -> dict:
    return {"type": "revansh_offer", "next_stake": next_stake(m)}


def can_offer_rematch(m: Match, users: UserRegistry) -> bool:
    """После выплаты у обоих должно хватать денег на удвоенную ставку."""
    stake = next_stake(m)
    return all(users.can_afford(cid, stake) for cid in m.connection_ids)


def accept(m: Match, connection_id: str) -> bool:
    """
    Отметить согласие игрока. Возвращает True, когда согласны оба.
    Повторное согласие того же игрока ничего не меняет.
    """
    if not m.concluded:
        return False
    idx = m.seat_of(connection_id)
    if idx is None:
        return False
    if m.rematch_accepted is None:
        m.rematch_accepted = [False, False]
    m.rematch_accepted[idx] = True
    return all(m.rematch_accepted)


def start(m: Match, users: UserRegistry, rng: random.Random) -> bool:
    """
    Перезапустить матч на удвоенную ставку. Флаги согласия при отказе остаются,
    так что повторный accept попробует снова.
    """
    if not m.concluded or not m.rematch_accepted or not all(m.rematch_accepted):
        return False
    stake = next_stake(m)
    players = [users.get(cid) for cid in m.connection_ids]
    if any(u is None or u.busy or u.balance < stake for u in players):
        logger.info("rematch %s rejected: stake=%s", m.room_id, stake)
        return False
    for u in players:
        users.debit(u.connection_id, stake)
        u.busy = True
    m.restart(stake, rng)
    logger.info("rematch %s started: stake=%s first_turn=%s", m.room_id, stake, m.current_turn)
    return True
