"""Тесты реестра пользователей и очереди предложений."""
import random

import pytest

from burnduel.pairing import MatchmakingError, OfferQueue
from burnduel.registry import UserRegistry


@pytest.fixture
def users() -> UserRegistry:
    registry = UserRegistry(starting_balance=1000)
    registry.login("a", "Alice")
    registry.login("b", "Bob")
    return registry


@pytest.fixture
def queue() -> OfferQueue:
    return OfferQueue()


class TestUserRegistry:
    def test_login_resets_state(self, users: UserRegistry):
        users.debit("a", 300)
        users.set_busy("a", True)
        user = users.login("a", "Alice2")
        assert user.balance == 1000
        assert user.busy is False
        assert users.get("a").name == "Alice2"

    def test_debit_requires_sufficient_balance(self, users: UserRegistry):
        assert users.debit("a", 1001) is False
        assert users.get("a").balance == 1000
        assert users.debit("a", 1000) is True
        assert users.get("a").balance == 0

    def test_debit_and_credit_unknown_user(self, users: UserRegistry):
        assert users.debit("zzz", 1) is False
        assert users.credit("zzz", 1) is False

    def test_remove(self, users: UserRegistry):
        assert users.remove("a").name == "Alice"
        assert "a" not in users
        assert users.remove("a") is None


class TestCreateOffer:
    def test_create_appends_offer(self, users, queue):
        offer = queue.create(users, "a", 100, 3)
        assert len(queue) == 1
        snap = queue.snapshot()[0]
        assert snap == {
            "id": offer.id,
            "creator_id": "a",
            "creator_name": "Alice",
            "stake": 100,
            "rounds": 3,
        }
        # создание игры не списывает ставку
        assert users.get("a").balance == 1000

    def test_offer_ids_are_unique(self, users, queue):
        first = queue.create(users, "a", 100, 3)
        second = queue.create(users, "a", 100, 3)
        assert first.id != second.id
        assert len(queue) == 2

    @pytest.mark.parametrize("stake", [0, -5, 1001])
    def test_bad_stake(self, users, queue, stake):
        with pytest.raises(MatchmakingError) as exc:
            queue.create(users, "a", stake, 3)
        assert exc.value.message == "Недостаточно баланса для ставки!"
        assert len(queue) == 0

    @pytest.mark.parametrize("rounds", [0, 2, 4, 11, -1])
    def test_bad_round_count(self, users, queue, rounds):
        with pytest.raises(MatchmakingError) as exc:
            queue.create(users, "a", 100, rounds)
        assert exc.value.message == "Некорректное количество раундов!"

    def test_busy_creator(self, users, queue):
        users.set_busy("a", True)
        with pytest.raises(MatchmakingError):
            queue.create(users, "a", 100, 3)

    def test_unknown_creator(self, users, queue):
        with pytest.raises(MatchmakingError):
            queue.create(users, "zzz", 100, 3)


class TestCancelOffer:
    def test_cancel_removes_own_offer(self, users, queue):
        queue.create(users, "a", 100, 3)
        queue.create(users, "b", 50, 1)
        assert queue.cancel(users, "a") is True
        assert [o["creator_id"] for o in queue.snapshot()] == ["b"]

    def test_cancel_without_offer_is_noop(self, users, queue):
        queue.create(users, "b", 50, 1)
        assert queue.cancel(users, "a") is False
        assert queue.cancel(users, "a") is False
        assert len(queue) == 1

    def test_remove_all_by(self, users, queue):
        queue.create(users, "a", 100, 3)
        queue.create(users, "a", 200, 5)
        queue.create(users, "b", 50, 1)
        assert queue.remove_all_by("a") == 2
        assert len(queue) == 1


class TestJoinOffer:
    def test_join_escrows_both_stakes(self, users, queue):
        offer = queue.create(users, "a", 100, 3)
        match = queue.join(users, offer.id, "b", random.Random(0))
        assert users.get("a").balance == 900
        assert users.get("b").balance == 900
        assert users.get("a").busy and users.get("b").busy
        assert len(queue) == 0
        assert match.room_id == f"room_{offer.id}"
        assert match.connection_ids == ["a", "b"]
        assert [s.name for s in match.seats] == ["Alice", "Bob"]
        assert match.stake == 100
        assert match.rounds == 3

    def test_join_drops_other_offers_of_both_players(self, users, queue):
        users.login("c", "Carol")
        queue.create(users, "a", 100, 3)
        queue.create(users, "a", 50, 1)
        bob_offer = queue.create(users, "b", 100, 3)
        queue.create(users, "c", 70, 5)
        queue.join(users, bob_offer.id, "a", random.Random(0))
        assert [o["creator_id"] for o in queue.snapshot()] == ["c"]
        # отмена после входа в матч не снимает флаг занятости
        assert queue.cancel(users, "a") is False
        assert users.get("a").busy

    def test_unknown_offer(self, users, queue):
        with pytest.raises(MatchmakingError) as exc:
            queue.join(users, "nope", "b", random.Random(0))
        assert exc.value.message == "Игра не найдена."

    def test_cannot_join_own_offer(self, users, queue):
        offer = queue.create(users, "a", 100, 3)
        with pytest.raises(MatchmakingError):
            queue.join(users, offer.id, "a", random.Random(0))
        assert users.get("a").balance == 1000
        assert len(queue) == 1

    def test_busy_participant(self, users, queue):
        offer = queue.create(users, "a", 100, 3)
        users.set_busy("a", True)
        with pytest.raises(MatchmakingError):
            queue.join(users, offer.id, "b", random.Random(0))
        assert users.get("b").balance == 1000
        assert len(queue) == 1

    def test_joiner_cannot_cover_stake(self, users, queue):
        offer = queue.create(users, "a", 600, 3)
        users.debit("b", 500)
        with pytest.raises(MatchmakingError) as exc:
            queue.join(users, offer.id, "b", random.Random(0))
        assert exc.value.message == "Недостаточно баланса!"
        assert users.get("a").balance == 1000
        assert users.get("b").balance == 500
        assert not users.get("a").busy and not users.get("b").busy

    def test_creator_cannot_cover_stake(self, users, queue):
        offer = queue.create(users, "a", 600, 3)
        users.debit("a", 500)
        with pytest.raises(MatchmakingError):
            queue.join(users, offer.id, "b", random.Random(0))
        assert users.get("b").balance == 1000

    def test_creator_gone(self, users, queue):
        offer = queue.create(users, "a", 100, 3)
        users.remove("a")
        with pytest.raises(MatchmakingError):
            queue.join(users, offer.id, "b", random.Random(0))
