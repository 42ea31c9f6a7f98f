"""Shared fixtures for the pension simulation tests."""

import numpy as np
import pytest

from pensionsim import (
    CareerProfile,
    DCParams,
    MonteCarloParams,
    SimulationConfig,
    EconomicObservation,
    EconomicHistory,
)


@pytest.fixture(scope="session")
def flat_observation():
    """Observation used for the fixed-series scenario."""
    return EconomicObservation(
        us_equity_return=0.08,
        intl_equity_return=0.06,
        bond_return=0.03,
        wage_growth_rate=0.02,
        inflation_rate=0.02,
        short_term_rate=0.0,
    )


@pytest.fixture(scope="session")
def varied_history():
    """
    Synthetic 90-year annual history with realistic dispersion.

    Generated once from a fixed seed so every test sees the same rows.
    """
    rng = np.random.default_rng(2024)
    n = 90
    data = np.column_stack([
        rng.normal(0.07, 0.18, n),     # US equity
        rng.normal(0.06, 0.20, n),     # Intl equity
        rng.normal(0.03, 0.07, n),     # Bonds
        rng.normal(0.01, 0.015, n),    # Wage growth
        rng.normal(0.03, 0.025, n),    # Inflation
        rng.normal(0.025, 0.01, n),    # Short-term rate
    ])
    return EconomicHistory(data)


@pytest.fixture
def base_config():
    return SimulationConfig(
        career=CareerProfile(starting_salary=57_000, hire_age=30, retirement_age=65, death_age=90),
        dc=DCParams(withdrawal_rate=0.06),
        monte_carlo=MonteCarloParams(n_trials=200, random_seed=123),
    )
