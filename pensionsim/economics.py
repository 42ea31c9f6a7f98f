"""
Economic primitives for the DB vs DC pension comparison.

This module contains the pure per-year rules both plans are built from:
- Salary progression and final average salary
- DB tiered accrual and cost-of-living adjustment
- DC contribution rate tables
- Age-banded asset allocation and blended portfolio return
"""

import numpy as np
from typing import Optional

from .errors import ComputationError
from .history import RETURN_COLUMNS
from .params import (
    AssetAllocation,
    ALLOCATION_BANDS,
    EmployerSchedule,
    DB_RATE_UNDER_20,
    DB_RATE_AT_20,
    DB_BASE_AFTER_20,
    DB_RATE_AFTER_20,
    FAS_YEARS,
    COLA_INFLATION_SHARE,
    COLA_FLOOR,
    COLA_CAP,
    EMPLOYEE_CONTRIBUTION_BRACKETS,
    EMPLOYER_RATE_EARLY,
    EMPLOYER_RATE_LATE,
    EMPLOYER_TENURE_YEARS,
    EMPLOYER_AGE_CUTOFF,
)


# =============================================================================
# Salary Progression
# =============================================================================

def next_salary(salary: float, wage_growth_rate: float, inflation_rate: float) -> float:
    """
    One year of salary progression.

    Wage growth and inflation are added, not compounded separately:
        salary * (1 + wage_growth + inflation)
    """
    return salary * (1.0 + wage_growth_rate + inflation_rate)


def project_salary_path(
    starting_salary: float,
    wage_growth: np.ndarray,
    inflation: np.ndarray,
) -> np.ndarray:
    """
    Salary for each working year, after that year's raise.

    Args:
        starting_salary: Salary at hire
        wage_growth: Sampled wage growth rate per year
        inflation: Sampled inflation rate per year (same length)

    Returns:
        Array with one salary per year; empty if no years are given
    """
    if len(wage_growth) != len(inflation):
        raise ComputationError(
            f"wage_growth ({len(wage_growth)}) and inflation ({len(inflation)}) lengths differ")

    path = np.empty(len(wage_growth))
    salary = starting_salary
    for year, (g, i) in enumerate(zip(wage_growth, inflation)):
        salary = next_salary(salary, g, i)
        path[year] = salary
    return path


def final_average_salary(salary_path: np.ndarray, n_years: int = FAS_YEARS) -> Optional[float]:
    """Mean of the last min(n_years, len(path)) salaries; None for an empty path."""
    if len(salary_path) == 0:
        return None
    return float(np.mean(salary_path[-n_years:]))


# =============================================================================
# Defined Benefit
# =============================================================================

def db_annual_benefit(fas: float, years_worked: int, rate_at_20: float = DB_RATE_AT_20) -> float:
    """
    Tiered DB accrual.

        N < 20:  0.0167 * FAS * N
        N == 20: rate_at_20 * FAS * N
        N > 20:  (0.35 + 0.02 * (N - 20)) * FAS
    """
    if years_worked < 20:
        return DB_RATE_UNDER_20 * fas * years_worked
    if years_worked == 20:
        return rate_at_20 * fas * years_worked
    return (DB_BASE_AFTER_20 + DB_RATE_AFTER_20 * (years_worked - 20)) * fas


def cola_rate(inflation_rate):
    """Half of inflation, floored at 1% and capped at 3%. Accepts scalars or arrays."""
    cola = np.clip(COLA_INFLATION_SHARE * np.asarray(inflation_rate, dtype=float), COLA_FLOOR, COLA_CAP)
    if cola.ndim == 0:
        return float(cola)
    return cola


# =============================================================================
# Defined Contribution
# =============================================================================

def employee_contribution_rate(salary: float) -> float:
    """Progressive employee rate keyed by the current year's salary."""
    for upper, rate in EMPLOYEE_CONTRIBUTION_BRACKETS:
        if salary <= upper:
            return rate
    return EMPLOYEE_CONTRIBUTION_BRACKETS[-1][1]


def employer_contribution_rate(
    years_of_service: int,
    age: int,
    schedule: EmployerSchedule = EmployerSchedule.TENURE,
) -> float:
    """
    Employer rate for a working year.

    Args:
        years_of_service: Completed years before this one (0 in the first year)
        age: Current age
        schedule: TENURE keys off service, AGE keys off age
    """
    if schedule is EmployerSchedule.AGE:
        return EMPLOYER_RATE_EARLY if age <= EMPLOYER_AGE_CUTOFF else EMPLOYER_RATE_LATE
    return EMPLOYER_RATE_EARLY if years_of_service < EMPLOYER_TENURE_YEARS else EMPLOYER_RATE_LATE


# =============================================================================
# Asset Allocation
# =============================================================================

def allocation_for_age(age: int) -> AssetAllocation:
    """Look up the fixed age band: <=49, 50-59, 60-74, >=75."""
    for max_age, allocation in ALLOCATION_BANDS:
        if max_age is None or age <= max_age:
            return allocation
    return ALLOCATION_BANDS[-1][1]


def blended_return(allocation: AssetAllocation, observation: np.ndarray) -> float:
    """Dot product of allocation weights and one observation's asset-class returns."""
    return float(np.dot(allocation.weights, observation[RETURN_COLUMNS]))
