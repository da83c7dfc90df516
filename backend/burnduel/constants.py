"""Константы игры."""
from typing import Final

DECK_SIZE: Final = 6

CARD_SAFE: Final = "safe"
CARD_BURN: Final = "burn"

# Допустимое количество раундов в матче (всегда нечётное — ничья невозможна)
ALLOWED_ROUND_COUNTS: tuple[int, ...] = (1, 3, 5, 7, 9)

# Матч после реванша играется на удвоенную ставку
REMATCH_STAKE_MULTIPLIER: Final = 2

# Победитель забирает обе ставки
PAYOUT_MULTIPLIER: Final = 2

MAX_NAME_LENGTH: Final = 32
