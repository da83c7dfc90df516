"""Входящие сообщения клиента: закрытый набор типов, проверка на границе."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, StrictInt, StringConstraints, TypeAdapter

from .constants import DECK_SIZE, MAX_NAME_LENGTH


class Login(BaseModel):
    type: Literal["login"]
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=MAX_NAME_LENGTH)]


class GetBalance(BaseModel):
    type: Literal["get_balance"]


class ListGames(BaseModel):
    type: Literal["list_games"]


class CreateGame(BaseModel):
    type: Literal["create_game"]
    stake: StrictInt
    rounds: StrictInt


class JoinGame(BaseModel):
    type: Literal["join_game"]
    offer_id: str


class CancelPendingGame(BaseModel):
    type: Literal["cancel_pending_game"]


class MakeMove(BaseModel):
    type: Literal["make_move"]
    room_id: str
    slot: Annotated[StrictInt, Field(ge=0, lt=DECK_SIZE)]


class ShuffleDeck(BaseModel):
    type: Literal["shuffle_deck"]
    room_id: str


class AcceptRevansh(BaseModel):
    type: Literal["accept_revansh"]
    room_id: str


ClientMessage = Annotated[
    Union[
        Login,
        GetBalance,
        ListGames,
        CreateGame,
        JoinGame,
        CancelPendingGame,
        MakeMove,
        ShuffleDeck,
        AcceptRevansh,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(raw: str | bytes) -> ClientMessage:
    """Разобрать JSON-кадр. Бросает pydantic.ValidationError."""
    return _adapter.validate_json(raw)
