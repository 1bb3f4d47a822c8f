"""
Мутаторы сессии: чистые функции (state, args) -> MutationResult.
Входное состояние никогда не изменяется. Невыполненное предусловие —
это no-op (applied=False), а не ошибка; ошибкой считается только
некорректный ввод (ValidationError в поле error).
"""
import logging
from typing import Callable, NamedTuple

from .constants import MAX_COURTS, MIN_COURTS, PLAYERS_PER_COURT, SKILL_INDEX
from .errors import ValidationError
from .models import CourtSlot, Player, SessionState, generate_id, initial_state, replace_state, valid_court_count

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


class MutationResult(NamedTuple):
    state: SessionState
    applied: bool
    error: ValidationError | None = None


def _noop(state: SessionState) -> MutationResult:
    return MutationResult(state, False, None)


def _invalid(state: SessionState, error: ValidationError) -> MutationResult:
    return MutationResult(state, False, error)


def _check_courts(courts) -> ValidationError | None:
    if not valid_court_count(courts):
        return ValidationError(f"courts must be in [{MIN_COURTS}, {MAX_COURTS}]", field="courts")
    return None


def normalize_skill(raw: str) -> str | None:
    """Привести уровень к виду из шкалы ("Upper  Intermediate" -> "upper intermediate")."""
    skill = " ".join(raw.split()).lower()
    return skill if skill in SKILL_INDEX else None


def add_player(
    state: SessionState, name: str, skill: str, new_id: IdFactory = generate_id
) -> MutationResult:
    if name is not None and not isinstance(name, str):
        return _invalid(state, ValidationError("name must be a string", field="name"))
    if skill is not None and not isinstance(skill, str):
        return _invalid(state, ValidationError("skill must be a string", field="skill"))
    name = (name or "").strip()
    if not name:
        return _noop(state)
    normalized = normalize_skill(skill or "")
    if normalized is None:
        return _invalid(state, ValidationError(f"unknown skill {skill!r}", field="skill"))
    player = Player(id=new_id(), name=name, skill=normalized, games_played=0)
    logger.debug("add_player %s (%s) id=%s", player.name, player.skill, player.id)
    return MutationResult(replace_state(state, players=[*state.players, player]), True)


def parse_batch_line(line: str, line_no: int) -> tuple[str, str]:
    """
    Разобрать строку вида "name, skill". Делим по последней запятой:
    в названиях уровней бывают пробелы, а в именах иногда запятые.
    """
    if "," not in line:
        raise ValidationError('expected "name, skill"', line=line_no)
    name, raw_skill = line.rsplit(",", 1)
    name = name.strip()
    if not name:
        raise ValidationError("empty name", line=line_no, field="name")
    skill = normalize_skill(raw_skill)
    if skill is None:
        raise ValidationError(f"unknown skill {raw_skill.strip()!r}", line=line_no, field="skill")
    return name, skill


def batch_add_players(
    state: SessionState, text: str, new_id: IdFactory = generate_id
) -> MutationResult:
    """
    Добавить игроков пачкой, по одному "name, skill" на строку.
    Пустые строки пропускаются, но учитываются в нумерации.
    Первая же плохая строка отклоняет всю пачку.
    """
    if text is not None and not isinstance(text, str):
        return _invalid(state, ValidationError("text must be a string", field="text"))
    parsed = []
    for line_no, line in enumerate((text or "").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            parsed.append(parse_batch_line(line, line_no))
        except ValidationError as e:
            logger.info("batch_add_players rejected: %s", e)
            return _invalid(state, e)
    if not parsed:
        return _noop(state)
    new_players = [Player(id=new_id(), name=name, skill=skill) for name, skill in parsed]
    logger.debug("batch_add_players: %d players", len(new_players))
    return MutationResult(replace_state(state, players=[*state.players, *new_players]), True)


def delete_player(state: SessionState, player_id: str) -> MutationResult:
    """
    Удалить игрока отовсюду. Если он был на корте, игра на этом корте
    заканчивается: остальные трое становятся свободными.
    """
    if state.get_player(player_id) is None:
        return _noop(state)
    games = [
        CourtSlot(g.court, [])
        if any(p.id == player_id for p in g.players)
        else CourtSlot(g.court, list(g.players))
        for g in state.games
    ]
    logger.debug("delete_player %s", player_id)
    return MutationResult(
        replace_state(
            state,
            players=[p for p in state.players if p.id != player_id],
            queue=[p for p in state.queue if p.id != player_id],
            games=games,
        ),
        True,
    )


def delete_all_players(state: SessionState) -> MutationResult:
    return MutationResult(
        replace_state(state, players=[], queue=[], games=[CourtSlot(g.court) for g in state.games]),
        True,
    )


def enqueue(state: SessionState, player_id: str) -> MutationResult:
    player = state.get_player(player_id)
    if player is None or state.is_queued(player_id) or state.is_playing(player_id):
        return _noop(state)
    return MutationResult(replace_state(state, queue=[*state.queue, player]), True)


def dequeue(state: SessionState, player_id: str) -> MutationResult:
    if not state.is_queued(player_id):
        return _noop(state)
    return MutationResult(
        replace_state(state, queue=[p for p in state.queue if p.id != player_id]), True
    )


def start_game(state: SessionState) -> MutationResult:
    """Первые четверо из очереди идут на свободный корт с наименьшим номером."""
    empty = next((i for i, g in enumerate(state.games) if g.is_empty), None)
    if empty is None or len(state.queue) < PLAYERS_PER_COURT:
        return _noop(state)
    starting_ids = [p.id for p in state.queue[:PLAYERS_PER_COURT]]
    players = [
        Player(p.id, p.name, p.skill, p.games_played + 1) if p.id in starting_ids else p
        for p in state.players
    ]
    by_id = {p.id: p for p in players}
    games = [CourtSlot(g.court, list(g.players)) for g in state.games]
    games[empty] = CourtSlot(games[empty].court, [by_id[pid] for pid in starting_ids])
    logger.debug("start_game on court %d: %s", games[empty].court, starting_ids)
    return MutationResult(
        replace_state(state, players=players, queue=state.queue[PLAYERS_PER_COURT:], games=games),
        True,
    )


def end_game(state: SessionState, court: int) -> MutationResult:
    if not isinstance(court, int) or isinstance(court, bool) or not 1 <= court <= state.courts:
        return _invalid(
            state, ValidationError(f"court must be in [1, {state.courts}]", field="court")
        )
    if state.games[court - 1].is_empty:
        return _noop(state)
    games = [
        CourtSlot(g.court, [] if g.court == court else list(g.players)) for g in state.games
    ]
    logger.debug("end_game on court %d", court)
    return MutationResult(replace_state(state, games=games), True)


def change_courts(state: SessionState, courts: int) -> MutationResult:
    """
    Изменить число кортов. При уменьшении старшие корты отбрасываются
    вместе с игроками: в очередь они не возвращаются, а остаются в составе
    свободными.
    """
    error = _check_courts(courts)
    if error is not None:
        return _invalid(state, error)
    if courts == state.courts:
        return _noop(state)
    games = [CourtSlot(g.court, list(g.players)) for g in state.games[:courts]]
    games.extend(CourtSlot(court=i + 1) for i in range(len(games), courts))
    dropped = [p.id for g in state.games[courts:] for p in g.players]
    if dropped:
        logger.info("change_courts %d -> %d dropped players %s", state.courts, courts, dropped)
    return MutationResult(replace_state(state, courts=courts, games=games), True)


def reset_session(state: SessionState, courts: int | None = None) -> MutationResult:
    """Начать сессию заново с тем же (или заданным) числом кортов."""
    if courts is None:
        courts = state.courts
    error = _check_courts(courts)
    if error is not None:
        return _invalid(state, error)
    return MutationResult(initial_state(courts), True)
