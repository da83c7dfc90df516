"""
Реестр пользователей по подключениям (in-memory).
Балансы живут только пока открыт сокет.
"""
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class User:
    connection_id: str
    name: str
    balance: int
    busy: bool = False  # участвует в матче


class UserRegistry:
    def __init__(self, starting_balance: int):
        self.starting_balance = starting_balance
        self._users: dict[str, User] = {}

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._users

    def login(self, connection_id: str, name: str) -> User:
        """
        Создаёт (или пересоздаёт) пользователя с начальным балансом.
        Повторный login на том же подключении сбрасывает баланс и флаги.
        """
        user = User(connection_id=connection_id, name=name, balance=self.starting_balance)
        self._users[connection_id] = user
        logger.info("login: %s as %r, balance=%s", connection_id, name, user.balance)
        return user

    def get(self, connection_id: str) -> User | None:
        return self._users.get(connection_id)

    def remove(self, connection_id: str) -> User | None:
        return self._users.pop(connection_id, None)

    def can_afford(self, connection_id: str, amount: int) -> bool:
        user = self._users.get(connection_id)
        return user is not None and user.balance >= amount

    def debit(self, connection_id: str, amount: int) -> bool:
        """Списать ставку. Ничего не делает, если денег не хватает."""
        user = self._users.get(connection_id)
        if user is None or amount <= 0 or user.balance < amount:
            return False
        user.balance -= amount
        return True

    def credit(self, connection_id: str, amount: int) -> bool:
        user = self._users.get(connection_id)
        if user is None:
            return False
        user.balance += amount
        return True

    def set_busy(self, connection_id: str, busy: bool) -> None:
        user = self._users.get(connection_id)
        if user is not None:
            user.busy = busy
