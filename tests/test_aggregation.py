"""
Tests for cross-trial aggregation and the summary plots built on it.
"""

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

import numpy as np
import pytest

from pensionsim import (
    CareerProfile,
    DCParams,
    MonteCarloParams,
    SimulationConfig,
    ComparisonBasis,
    EconomicPath,
    EconomicPathSampler,
    BatchResult,
    ProbabilityEstimate,
    aggregate_outcomes,
    constant_path,
    run_monte_carlo,
    run_trial,
    wilson_interval,
)
from pensionviz import create_summary_figure, plot_depletion_ages


# =============================================================================
# Wilson Interval
# =============================================================================

@pytest.mark.parametrize("successes, n", [(0, 10), (3, 10), (10, 10), (57, 200), (1, 1)])
def test_wilson_interval_brackets_point(successes, n):
    low, high = wilson_interval(successes, n)
    p = successes / n
    assert 0.0 <= low <= p <= high <= 1.0


@pytest.mark.parametrize("n", [1, 10, 200, 1000])
def test_wilson_interval_exact_at_extremes(n):
    assert wilson_interval(n, n)[1] == 1.0
    assert wilson_interval(0, n)[0] == 0.0


def test_all_depleted_estimate_contains_point():
    estimate = ProbabilityEstimate.from_counts(200, 200)
    assert estimate.point == 1.0
    assert estimate.ci_low <= estimate.point <= estimate.ci_high


def test_wilson_interval_known_value():
    # 50 of 100: centre 0.5, half-width ~0.0962
    low, high = wilson_interval(50, 100)
    assert low == pytest.approx(0.4038, abs=1e-4)
    assert high == pytest.approx(0.5962, abs=1e-4)


def test_wilson_interval_narrows_with_n():
    low_small, high_small = wilson_interval(20, 100)
    low_large, high_large = wilson_interval(200, 1000)
    assert high_large - low_large < high_small - low_small


def test_empty_estimate():
    estimate = ProbabilityEstimate.from_counts(0, 0)
    assert estimate.point is None
    assert estimate.ci_low is None and estimate.ci_high is None
    assert "n=0" in str(estimate)


# =============================================================================
# Batch Summary
# =============================================================================

@pytest.fixture(scope="module")
def batch(varied_history):
    config = SimulationConfig(
        career=CareerProfile(starting_salary=57_000, hire_age=30, retirement_age=65, death_age=90),
        dc=DCParams(withdrawal_rate=0.07),
        monte_carlo=MonteCarloParams(n_trials=200, random_seed=321),
    )
    return run_monte_carlo(config, varied_history)


@pytest.fixture(scope="module")
def summary(batch):
    return aggregate_outcomes(batch)


def test_counts_are_consistent(batch, summary):
    assert summary.n_requested == 200
    assert summary.n_successful == batch.n_successful == 200
    assert summary.n_failed == 0
    assert summary.n_not_run == 0
    assert len(summary.db_initial_income) == len(summary.dc_initial_income) == 200
    assert len(summary.dc_depletion_ages) == summary.p_dc_depleted.successes


def test_probabilities_in_unit_interval(summary):
    for estimate in (summary.p_dc_depleted, summary.p_dc_exceeds_db_average, summary.p_dc_exceeds_db_initial):
        assert 0.0 <= estimate.point <= 1.0
        assert estimate.ci_low <= estimate.point <= estimate.ci_high
        assert estimate.n == 200


def test_both_comparison_bases_reported(batch, summary):
    initial = sum(o.dc_monthly_income_at_retirement > o.db_monthly_income_at_retirement
                  for o in batch.outcomes)
    average = sum(o.dc_average_monthly_income > o.db_average_monthly_income for o in batch.outcomes)

    assert summary.p_dc_exceeds_db_initial.successes == initial
    assert summary.p_dc_exceeds_db_average.successes == average
    assert summary.p_dc_exceeds_db() is summary.p_dc_exceeds_db_average
    assert summary.p_dc_exceeds_db(ComparisonBasis.INITIAL_MONTHLY) is summary.p_dc_exceeds_db_initial


def test_depletion_ages_within_horizon(summary):
    assert np.all(summary.dc_depletion_ages >= 65)
    assert np.all(summary.dc_depletion_ages < 90)


def test_depleted_trials_pay_nothing_afterwards(batch):
    for outcome in batch.outcomes:
        if outcome.dc_depleted:
            k = outcome.dc_depletion_age - 65
            assert np.all(outcome.dc_income_path[k + 1:] == 0.0)
            assert np.all(outcome.dc_account_path[k:] == 0.0)


def test_percentiles_and_frames(summary):
    pct = summary.percentile('dc_average_income', [5, 50, 95])
    assert len(pct) == 3
    assert pct[0] <= pct[1] <= pct[2]

    frame = summary.summary_frame()
    assert list(frame.index) == ['db_initial_income', 'db_average_income', 'dc_initial_income',
                                 'dc_average_income', 'dc_balance_at_retirement']
    assert (frame['n'] == 200).all()
    assert (frame['status'] == 'ok').all()
    assert (frame['p5'] <= frame['p95']).all()

    probs = summary.probability_frame()
    assert probs.loc['dc_depleted', 'n'] == 200


def test_not_applicable_averages_are_excluded(flat_observation):
    """Trials with an empty retirement horizon count in the initial basis only."""
    config = SimulationConfig(
        career=CareerProfile(starting_salary=57_000, hire_age=30, retirement_age=60, death_age=85),
        monte_carlo=MonteCarloParams(n_trials=4),
    )
    empty = [run_trial(config, constant_path(flat_observation, 30, 0), 0.02, i) for i in range(2)]
    full = [run_trial(config, constant_path(flat_observation, 30, 25), 0.02, i) for i in range(2, 4)]
    summary = aggregate_outcomes(BatchResult(config=config, outcomes=empty + full))

    assert summary.n_average_not_applicable == 2
    assert summary.p_dc_exceeds_db_average.n == 2
    assert summary.p_dc_exceeds_db_initial.n == 4
    assert len(summary.dc_average_income) == 2


def test_all_not_applicable_gives_no_estimate(flat_observation):
    config = SimulationConfig(monte_carlo=MonteCarloParams(n_trials=3))
    outcomes = [run_trial(config, constant_path(flat_observation, 35, 0), 0.02, i) for i in range(3)]
    summary = aggregate_outcomes(BatchResult(config=config, outcomes=outcomes))

    assert summary.p_dc_exceeds_db_average.point is None
    assert summary.p_dc_exceeds_db_initial.n == 3
    assert summary.percentile('dc_average_income') is None
    assert summary.p_dc_depleted.point == 0.0

    frame = summary.summary_frame()
    assert frame.loc['dc_average_income', 'status'] == 'not applicable'
    assert frame.loc['db_average_income', 'n'] == 0
    assert frame.loc['dc_initial_income', 'status'] == 'ok'


def test_depletion_probability_grows_with_retirement_length(varied_history):
    """
    Same sampled paths, retirement horizon cut shorter and shorter: the share
    of depleted accounts can only fall, reaching zero with no retirement years.
    """
    n_paths = 60
    config = SimulationConfig(
        career=CareerProfile(starting_salary=57_000, hire_age=30, retirement_age=65, death_age=95),
        dc=DCParams(withdrawal_rate=0.08),
        monte_carlo=MonteCarloParams(n_trials=n_paths),
    )
    sampler = EconomicPathSampler(varied_history, np.random.default_rng(17))
    paths = [sampler.sample(35, 30) for _ in range(n_paths)]

    previous = None
    for years_retired in (30, 25, 20, 15, 10, 5, 0):
        outcomes = [
            run_trial(config, EconomicPath(p.working, p.retirement[:years_retired]), 0.03, i)
            for i, p in enumerate(paths)
        ]
        p_depleted = aggregate_outcomes(BatchResult(config=config, outcomes=outcomes)).p_dc_depleted.point
        if previous is not None:
            assert p_depleted <= previous
        previous = p_depleted

    assert previous == 0.0


def test_failures_and_cancellation_flow_into_summary(batch):
    partial = BatchResult(config=batch.config, outcomes=batch.outcomes[:150], cancelled=True)
    summary = aggregate_outcomes(partial)
    assert summary.cancelled
    assert summary.n_successful == 150
    assert summary.n_not_run == 50
    assert summary.p_dc_depleted.n == 150


# =============================================================================
# Plots
# =============================================================================

def test_summary_figure_renders(batch, summary):
    fig = create_summary_figure(batch, summary)
    assert len(fig.axes) == 4
    plt.close(fig)

    fig, ax = plt.subplots()
    plot_depletion_ages(summary, ax=ax)
    assert ax.get_xlabel() == 'Depletion Age'
    plt.close(fig)


def test_summary_figure_handles_empty_batch(batch):
    empty = BatchResult(config=batch.config, outcomes=[], cancelled=True)
    fig = create_summary_figure(empty, aggregate_outcomes(empty))
    plt.close(fig)
