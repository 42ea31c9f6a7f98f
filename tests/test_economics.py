"""
Unit tests for the per-year economic rules.

Covers the pure lookup tables and formulas the two plans are built from:
allocation bands, DB tiered accrual, COLA clamping, contribution brackets,
employer schedules, salary progression and final average salary.
"""

import numpy as np
import pytest

from pensionsim import (
    ALLOCATION_BANDS,
    DB_RATE_AT_20,
    DB_RATE_AT_20_ALT,
    EmployerSchedule,
    AssetAllocation,
    ConfigurationError,
    EconomicObservation,
    allocation_for_age,
    blended_return,
    cola_rate,
    db_annual_benefit,
    employee_contribution_rate,
    employer_contribution_rate,
    final_average_salary,
    next_salary,
    project_salary_path,
)


# =============================================================================
# Asset Allocation
# =============================================================================

@pytest.mark.parametrize("max_age, allocation", ALLOCATION_BANDS)
def test_allocation_bands_sum_to_one(max_age, allocation):
    assert allocation.weights.sum() == pytest.approx(1.0, abs=1e-9)
    assert np.all(allocation.weights >= 0)


@pytest.mark.parametrize(
    "age, band_index",
    [(22, 0), (49, 0), (50, 1), (59, 1), (60, 2), (74, 2), (75, 3), (100, 3)],
)
def test_allocation_for_age_band_edges(age, band_index):
    assert allocation_for_age(age) is ALLOCATION_BANDS[band_index][1]


def test_short_term_weight_only_in_oldest_band():
    for max_age, allocation in ALLOCATION_BANDS:
        if max_age is None:
            assert allocation.short_term > 0
        else:
            assert allocation.short_term == 0.0


def test_allocation_validate_rejects_bad_weights():
    with pytest.raises(ConfigurationError):
        AssetAllocation(us_equity=0.7, intl_equity=0.3, bonds=0.1).validate()
    with pytest.raises(ConfigurationError):
        AssetAllocation(us_equity=1.2, intl_equity=-0.2, bonds=0.0).validate()


def test_blended_return_is_weighted_sum(flat_observation):
    row = flat_observation.as_array()
    young = allocation_for_age(40)
    expected = young.us_equity * 0.08 + young.intl_equity * 0.06 + young.bonds * 0.03
    assert blended_return(young, row) == pytest.approx(expected, rel=1e-12)


def test_short_term_rate_affects_only_oldest_band():
    obs = EconomicObservation(0.0, 0.0, 0.0, 0.0, 0.0, short_term_rate=0.05).as_array()
    assert blended_return(allocation_for_age(70), obs) == 0.0
    assert blended_return(allocation_for_age(80), obs) == pytest.approx(
        ALLOCATION_BANDS[-1][1].short_term * 0.05)


# =============================================================================
# Defined Benefit
# =============================================================================

@pytest.mark.parametrize(
    "years, multiplier",
    [
        (1, 0.0167 * 1),
        (16, 0.0167 * 16),
        (19, 0.0167 * 19),
        (20, 0.0175 * 20),
        (21, 0.37),
        (30, 0.55),
    ],
)
def test_db_accrual_table(years, multiplier):
    fas = 80_000.0
    assert db_annual_benefit(fas, years) == pytest.approx(multiplier * fas, rel=1e-12)


def test_db_accrual_alternate_rate_at_twenty():
    fas = 80_000.0
    assert db_annual_benefit(fas, 20, rate_at_20=DB_RATE_AT_20_ALT) == pytest.approx(0.0176 * fas * 20)
    # Only N == 20 is affected by the choice
    assert db_annual_benefit(fas, 19, DB_RATE_AT_20_ALT) == db_annual_benefit(fas, 19, DB_RATE_AT_20)
    assert db_annual_benefit(fas, 21, DB_RATE_AT_20_ALT) == db_annual_benefit(fas, 21, DB_RATE_AT_20)


def test_db_accrual_zero_service_is_zero():
    assert db_annual_benefit(50_000.0, 0) == 0.0


@pytest.mark.parametrize(
    "inflation, expected",
    [(-0.02, 0.01), (0.0, 0.01), (0.02, 0.01), (0.03, 0.015), (0.05, 0.025), (0.06, 0.03), (0.12, 0.03)],
)
def test_cola_is_half_inflation_clamped(inflation, expected):
    assert cola_rate(inflation) == pytest.approx(expected)


def test_cola_vectorized():
    colas = cola_rate(np.array([0.0, 0.04, 0.10]))
    np.testing.assert_allclose(colas, [0.01, 0.02, 0.03])


# =============================================================================
# Defined Contribution Rates
# =============================================================================

@pytest.mark.parametrize(
    "salary, rate",
    [
        (30_000, 0.03),
        (45_000, 0.03),
        (45_000.01, 0.035),
        (55_000, 0.035),
        (60_000, 0.045),
        (75_000, 0.045),
        (90_000, 0.0575),
        (100_000, 0.0575),
        (100_000.01, 0.06),
        (250_000, 0.06),
    ],
)
def test_employee_contribution_brackets(salary, rate):
    assert employee_contribution_rate(salary) == rate


@pytest.mark.parametrize("years_of_service, rate", [(0, 0.08), (6, 0.08), (7, 0.10), (20, 0.10)])
def test_employer_rate_by_tenure(years_of_service, rate):
    # Age is irrelevant under the tenure schedule
    assert employer_contribution_rate(years_of_service, 60, EmployerSchedule.TENURE) == rate


@pytest.mark.parametrize("age, rate", [(25, 0.08), (34, 0.08), (35, 0.10), (60, 0.10)])
def test_employer_rate_by_age(age, rate):
    assert employer_contribution_rate(0, age, EmployerSchedule.AGE) == rate


def test_employer_schedules_differ():
    """Hired at 40: tenure schedule starts at 8%, age schedule already at 10%."""
    assert employer_contribution_rate(0, 40, EmployerSchedule.TENURE) == 0.08
    assert employer_contribution_rate(0, 40, EmployerSchedule.AGE) == 0.10


# =============================================================================
# Salary Progression
# =============================================================================

def test_salary_growth_is_additive():
    assert next_salary(100.0, 0.02, 0.03) == pytest.approx(105.0)
    # Not compounded separately: 100 * 1.02 * 1.03 = 105.06
    assert next_salary(100.0, 0.02, 0.03) != pytest.approx(105.06)


@pytest.mark.parametrize("years", [1, 2, 3, 4, 16, 35])
def test_salary_path_length_matches_years_worked(years):
    path = project_salary_path(50_000.0, np.full(years, 0.01), np.full(years, 0.02))
    assert len(path) == years
    assert path[0] == pytest.approx(50_000.0 * 1.03)
    assert path[-1] == pytest.approx(50_000.0 * 1.03 ** years)


@pytest.mark.parametrize("years", [1, 2, 3, 4, 10])
def test_final_average_salary_uses_trailing_window(years):
    path = np.arange(1, years + 1, dtype=float) * 1_000
    window = min(3, years)
    assert final_average_salary(path) == pytest.approx(path[-window:].mean())


def test_empty_salary_path():
    path = project_salary_path(50_000.0, np.array([]), np.array([]))
    assert len(path) == 0
    assert final_average_salary(path) is None
