"""
Автоподбор четвёрки из свободных игроков.
Главный критерий — меньше сыгранных игр, второй — близкий уровень.
"""
import logging
import random
from typing import NamedTuple

from .constants import MAX_SKILL_SPREAD, PLAYERS_PER_COURT
from .models import Player, SessionState, replace_state

logger = logging.getLogger(__name__)


class PickResult(NamedTuple):
    state: SessionState
    picked: int
    fallback_used: bool


def skill_spread(group: list[Player]) -> int:
    indexes = [p.skill_index for p in group]
    return max(indexes) - min(indexes)


def rank_idle(idle: list[Player], rng: random.Random) -> list[Player]:
    """
    Сортировка по games_played; равные перемешаны случайно.
    Перемешиваем до стабильной сортировки, поэтому любой порядок
    внутри группы равных равновероятен.
    """
    ranked = list(idle)
    rng.shuffle(ranked)
    ranked.sort(key=lambda p: p.games_played)
    return ranked


def choose_group(ranked: list[Player]) -> tuple[list[Player], bool]:
    """Первое окно из 4 подряд с разбросом уровней <= 1, иначе первые 4."""
    for start in range(len(ranked) - PLAYERS_PER_COURT + 1):
        window = ranked[start:start + PLAYERS_PER_COURT]
        if skill_spread(window) <= MAX_SKILL_SPREAD:
            return window, False
    return ranked[:PLAYERS_PER_COURT], True


def auto_pick(state: SessionState, rng: random.Random | None = None) -> PickResult:
    """
    Поставить в хвост очереди четырёх свободных игроков.
    Возвращает PickResult; picked=0, если свободных меньше четырёх.
    """
    idle = state.idle_players()
    if len(idle) < PLAYERS_PER_COURT:
        return PickResult(state, 0, False)
    group, fallback = choose_group(rank_idle(idle, rng or random.Random()))
    names = ", ".join(f"{p.name}({p.skill}/{p.games_played})" for p in group)
    if fallback:
        logger.info("auto_pick fallback, no homogeneous group: %s", names)
    else:
        logger.info("auto_pick: %s", names)
    return PickResult(replace_state(state, queue=[*state.queue, *group]), len(group), fallback)
