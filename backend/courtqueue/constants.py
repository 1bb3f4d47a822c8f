"""Константы сессии: шкала уровней и ограничения кортов."""

SKILLS: list[str] = [
    "new",
    "beginner",
    "intermediate",
    "upper intermediate",
    "advanced",
    "expert",
]

SKILL_INDEX: dict[str, int] = {skill: i for i, skill in enumerate(SKILLS)}

MIN_COURTS = 1
MAX_COURTS = 6

PLAYERS_PER_COURT = 4
MAX_SKILL_SPREAD = 1
