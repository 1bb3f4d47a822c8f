"""
Модель данных сессии: игроки, очередь, корты.
Состояние заменяется целиком; мутаторы строят новое значение, не трогая старое.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any

from .constants import MAX_COURTS, MIN_COURTS, SKILL_INDEX
from .errors import ValidationError


def generate_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    skill: str
    games_played: int = 0

    @property
    def skill_index(self) -> int:
        return SKILL_INDEX[self.skill]


@dataclass
class CourtSlot:
    court: int  # номер корта, с 1
    players: list[Player] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.players


@dataclass
class SessionState:
    courts: int
    players: list[Player] = field(default_factory=list)
    queue: list[Player] = field(default_factory=list)
    games: list[CourtSlot] = field(default_factory=list)

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def queued_ids(self) -> set[str]:
        return {p.id for p in self.queue}

    def playing_ids(self) -> set[str]:
        return {p.id for g in self.games for p in g.players}

    def is_queued(self, player_id: str) -> bool:
        return any(p.id == player_id for p in self.queue)

    def is_playing(self, player_id: str) -> bool:
        return player_id in self.playing_ids()

    def idle_players(self) -> list[Player]:
        """Игроки в составе, но не в очереди и не на корте (в порядке добавления)."""
        busy = self.queued_ids() | self.playing_ids()
        return [p for p in self.players if p.id not in busy]


def valid_court_count(courts: Any) -> bool:
    return isinstance(courts, int) and not isinstance(courts, bool) and MIN_COURTS <= courts <= MAX_COURTS


def initial_state(courts: int = 3) -> SessionState:
    """Новая сессия: пустые корты, никого в составе и очереди."""
    if not valid_court_count(courts):
        raise ValidationError(
            f"courts must be an integer in [{MIN_COURTS}, {MAX_COURTS}]", field="courts"
        )
    return SessionState(
        courts=courts,
        games=[CourtSlot(court=i + 1) for i in range(courts)],
    )


def replace_state(state: SessionState, **changes) -> SessionState:
    """Копия состояния с заменёнными полями; слоты кортов копируются."""
    return SessionState(
        courts=changes.get("courts", state.courts),
        players=changes.get("players", list(state.players)),
        queue=changes.get("queue", list(state.queue)),
        games=changes.get("games", [CourtSlot(g.court, list(g.players)) for g in state.games]),
    )


def player_to_dict(p: Player) -> dict[str, Any]:
    return {"id": p.id, "name": p.name, "skill": p.skill, "gamesPlayed": p.games_played}


def state_to_dict(state: SessionState) -> dict[str, Any]:
    """Собрать JSON-совместимый документ состояния для рассылки клиентам."""
    return {
        "courts": state.courts,
        "players": [player_to_dict(p) for p in state.players],
        "queue": [player_to_dict(p) for p in state.queue],
        "games": [
            {"court": g.court, "players": [player_to_dict(p) for p in g.players]}
            for g in state.games
        ],
    }


def player_from_dict(data: Any) -> Player:
    if not isinstance(data, dict):
        raise ValidationError("player must be an object", field="players")
    try:
        player_id = data["id"]
        name = data["name"]
        skill = data["skill"]
        games_played = data.get("gamesPlayed", 0)
    except KeyError as e:
        raise ValidationError(f"player is missing {e.args[0]!r}", field="players") from None
    if not isinstance(player_id, str) or not player_id:
        raise ValidationError("player id must be a non-empty string", field="id")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("player name must be a non-empty string", field="name")
    if skill not in SKILL_INDEX:
        raise ValidationError(f"unknown skill {skill!r}", field="skill")
    if not isinstance(games_played, int) or isinstance(games_played, bool) or games_played < 0:
        raise ValidationError("gamesPlayed must be a non-negative integer", field="gamesPlayed")
    return Player(id=player_id, name=name, skill=skill, games_played=games_played)


def state_from_dict(data: Any) -> SessionState:
    """
    Разобрать документ состояния (обратная операция к state_to_dict).
    Проверяет только форму; согласованность — invariants.check_invariants.
    """
    if not isinstance(data, dict):
        raise ValidationError("state must be an object")
    courts = data.get("courts")
    if not valid_court_count(courts):
        raise ValidationError(
            f"courts must be an integer in [{MIN_COURTS}, {MAX_COURTS}]", field="courts"
        )
    for key in ("players", "queue", "games"):
        if not isinstance(data.get(key) or [], list):
            raise ValidationError(f"{key} must be a list", field=key)
    games = []
    for g in data.get("games") or []:
        if not isinstance(g, dict) or not isinstance(g.get("court"), int):
            raise ValidationError("game must be an object with a court number", field="games")
        if not isinstance(g.get("players") or [], list):
            raise ValidationError("game players must be a list", field="games")
        games.append(CourtSlot(
            court=g["court"],
            players=[player_from_dict(p) for p in g.get("players") or []],
        ))
    return SessionState(
        courts=courts,
        players=[player_from_dict(p) for p in data.get("players") or []],
        queue=[player_from_dict(p) for p in data.get("queue") or []],
        games=games,
    )
