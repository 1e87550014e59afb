import math
import random

import pytest

from conftest import make_draws
from quini_engine.engine.errors import PreconditionViolation
from quini_engine.engine.normalizer import normalize_history
from quini_engine.engine.statistics import StatisticsEngine, pressure_ranking


def test_empty_history_is_fatal():
    with pytest.raises(PreconditionViolation):
        StatisticsEngine().analyze([])


def test_number_statistics(small_normalized):
    analysis = StatisticsEngine(windows=[2]).analyze(small_normalized)

    zero = analysis.statistic(0)
    assert zero.frequency == 3
    assert zero.relative_frequency == pytest.approx(0.75)
    assert zero.delay == 0
    assert zero.mean_delay == pytest.approx(1.5)
    assert zero.delay_std == pytest.approx(0.5)
    assert zero.poisson_lambda == pytest.approx(3.0)
    assert zero.poisson_score == pytest.approx(1 - math.exp(-3.0))
    assert zero.high_delay is False

    one = analysis.statistic(1)
    assert one.delay == 1
    assert one.mean_delay == pytest.approx(2.0)
    assert one.delay_std == 0.0
    assert one.high_delay is False


def test_rare_numbers_have_degenerate_delay_stats(small_normalized):
    analysis = StatisticsEngine().analyze(small_normalized)

    once = analysis.statistic(5)
    assert once.frequency == 1
    assert once.mean_delay == 0.0
    assert once.delay_std == 0.0
    assert once.delay == 3

    never = analysis.statistic(45)
    assert never.frequency == 0
    assert never.delay == 4
    assert never.last_seen is None
    assert never.poisson_score == 0.0
    assert 45 in analysis.high_delay_numbers


def test_relative_frequencies_sum_to_pick_count(synthetic_normalized):
    analysis = StatisticsEngine().analyze(synthetic_normalized)
    total = sum(s.relative_frequency for s in analysis.numbers)
    assert total == pytest.approx(6.0)
    assert len(analysis.numbers) == 46


def test_draw_order_does_not_matter(synthetic_history):
    shuffled = list(synthetic_history)
    random.Random(7).shuffle(shuffled)
    engine = StatisticsEngine()
    a = engine.analyze(normalize_history(synthetic_history))
    b = engine.analyze(normalize_history(shuffled))
    assert a == b

    # Even bypassing the normalizer's sort, the engine orders by date itself
    reordered = list(reversed(normalize_history(synthetic_history)))
    assert engine.analyze(reordered) == a


def test_poisson_window_is_capped(synthetic_normalized):
    analysis = StatisticsEngine(poisson_window=20).analyze(synthetic_normalized)
    stat = analysis.numbers[0]
    assert stat.poisson_lambda == pytest.approx(stat.relative_frequency * 20)


def test_draw_level_aggregates(small_normalized):
    analysis = StatisticsEngine(windows=[2, 10]).analyze(small_normalized)
    # sums: 15, 40, 57, 85
    assert analysis.moving_averages[2] == [27.5, 48.5, 71.0]
    assert analysis.moving_averages[10] == []
    assert analysis.sum_mean == pytest.approx(49.25)

    # amplitudes: 5, 10, 13, 19
    amp = analysis.amplitude
    assert amp.min == 5
    assert amp.max == 19
    assert amp.mean == pytest.approx(11.75)
    assert amp.p50 == pytest.approx(11.5)
    assert amp.p25 == pytest.approx(8.75)
    assert analysis.period.total_draws == 4


def test_significant_deviations_sorted(synthetic_normalized):
    analysis = StatisticsEngine(anomaly_threshold=1.0).analyze(synthetic_normalized)
    z_scores = [d.z_score for d in analysis.significant_deviations]
    assert z_scores == sorted(z_scores, reverse=True)
    assert all(z > 1.0 for z in z_scores)


def test_pressure_ranking_descending(synthetic_normalized):
    analysis = StatisticsEngine().analyze(synthetic_normalized)
    ranked = pressure_ranking(analysis)
    assert len(ranked) == 46
    pressures = [p for _, p in ranked]
    assert pressures == sorted(pressures, reverse=True)


def test_draws_outside_engine_domain_are_rejected():
    draws = normalize_history(make_draws([[0, 1, 2, 3, 4, 5]] * 3))
    with pytest.raises(PreconditionViolation, match="outside domain"):
        StatisticsEngine(number_min=1, number_max=45).analyze(draws)
