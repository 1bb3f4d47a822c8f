import itertools

import pytest

from courtqueue.models import initial_state
from courtqueue.mutators import batch_add_players, enqueue


@pytest.fixture
def new_id():
    """Предсказуемые id: p1, p2, ... в порядке создания."""
    counter = itertools.count(1)
    return lambda: f"p{next(counter)}"


@pytest.fixture
def session_with(new_id):
    """Собирает сессию из пар (имя, уровень); id игроков p1..pN.

    Usage::

        def test_something(session_with):
            state = session_with(("Mark", "new"), ("Jamie", "expert"), courts=2)
    """
    def build(*entries, courts=3):
        text = "\n".join(f"{name}, {skill}" for name, skill in entries)
        return batch_add_players(initial_state(courts), text, new_id).state

    return build


@pytest.fixture
def queued():
    """Ставит игроков в очередь по id, по порядку."""
    def build(state, *player_ids):
        for player_id in player_ids:
            result = enqueue(state, player_id)
            assert result.applied, player_id
            state = result.state
        return state

    return build
