from datetime import date

import pytest

from conftest import make_draws
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.normalizer import (
    normalize_draw,
    normalize_history,
    validate_combination,
    validate_number,
)
from quini_engine.schemas.draws import HistoricalDraw, Modality


def test_validate_combination_sorts():
    assert validate_combination([40, 3, 22, 10, 45, 31]) == (3, 10, 22, 31, 40, 45)


@pytest.mark.parametrize("numbers", [
    [1, 2, 3, 4, 5],
    [1, 2, 3, 4, 5, 6, 7],
    [1, 1, 2, 3, 4, 5],
    [0, 1, 2, 3, 4, 46],
    [-1, 1, 2, 3, 4, 5],
])
def test_validate_combination_rejects(numbers):
    with pytest.raises(PreconditionViolation):
        validate_combination(numbers)


def test_validate_number_never_clamps():
    assert validate_number(45) == 45
    with pytest.raises(PreconditionViolation):
        validate_number(46)
    with pytest.raises(PreconditionViolation):
        validate_number(True)


def test_normalize_draw_fields():
    draw = HistoricalDraw(
        draw_number=3100, draw_date=date(2024, 5, 5), numbers=[45, 3, 22, 10, 40, 31],
    )
    norm = normalize_draw(draw)
    assert norm.numbers == (3, 10, 22, 31, 40, 45)
    assert norm.total == 151
    assert norm.even_count == 3
    assert norm.odd_count == 3
    assert norm.spacing == (7, 12, 9, 9, 5)
    assert norm.amplitude == 42


def test_history_ordered_by_date_not_insertion(small_history):
    shuffled = list(reversed(small_history))
    ordered = normalize_history(shuffled)
    assert [d.draw_number for d in ordered] == [1, 2, 3, 4]


def test_history_filters_modality(small_rows):
    draws = make_draws(small_rows) + make_draws(small_rows, modality=Modality.REVANCHA)
    assert len(normalize_history(draws, "tradicional")) == 4
    assert len(normalize_history(draws, Modality.REVANCHA)) == 4
    assert len(normalize_history(draws)) == 8


def test_invalid_record_rejects_batch(small_rows):
    draws = make_draws(small_rows + [[0, 1, 2, 3, 4, 99]])
    with pytest.raises(PreconditionViolation, match="Draw 5"):
        normalize_history(draws)
