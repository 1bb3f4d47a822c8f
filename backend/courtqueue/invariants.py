"""Проверка согласованности состояния сессии."""
from collections import Counter

from .constants import MAX_COURTS, MIN_COURTS, PLAYERS_PER_COURT, SKILL_INDEX
from .errors import InvariantViolation
from .models import SessionState


def check_invariants(state: SessionState) -> None:
    """
    Бросает InvariantViolation, если состояние несогласовано:
    висячие ссылки, игрок сразу в двух местах, courts вне [1, 6],
    число слотов != courts, неполная игра на корте.
    """
    roster = {p.id: p for p in state.players}
    if len(roster) != len(state.players):
        raise InvariantViolation("duplicate player id in roster")
    for p in state.players:
        if p.skill not in SKILL_INDEX:
            raise InvariantViolation(f"player {p.id} has unknown skill {p.skill!r}")
        if p.games_played < 0:
            raise InvariantViolation(f"player {p.id} has negative games_played")

    if not MIN_COURTS <= state.courts <= MAX_COURTS:
        raise InvariantViolation(f"{state.courts} courts outside [{MIN_COURTS}, {MAX_COURTS}]")
    if len(state.games) != state.courts:
        raise InvariantViolation(
            f"{len(state.games)} court slots for {state.courts} courts"
        )
    for i, g in enumerate(state.games, start=1):
        if g.court != i:
            raise InvariantViolation(f"court slot {i} is numbered {g.court}")
        if len(g.players) not in (0, PLAYERS_PER_COURT):
            raise InvariantViolation(f"court {g.court} holds {len(g.players)} players")

    placed = Counter(p.id for p in state.queue)
    placed.update(p.id for g in state.games for p in g.players)
    for player_id, count in placed.items():
        if player_id not in roster:
            raise InvariantViolation(f"dangling reference to player {player_id}")
        if count > 1:
            raise InvariantViolation(f"player {player_id} is placed {count} times")
