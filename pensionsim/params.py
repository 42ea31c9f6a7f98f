"""
Parameter and result dataclasses for the DB vs DC pension simulation.

This module is the single source of truth for the plan formula constants,
the age-banded asset allocation table, the configuration objects threaded
through a simulation run, and the per-trial / per-batch result containers.
"""

import json
import math
import numpy as np
import pandas as pd
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Tuple
from enum import Enum

from .errors import ConfigurationError


# =============================================================================
# Plan Formula Constants
# =============================================================================

# Defined-benefit accrual (N = years of service, FAS = final average salary)
DB_RATE_UNDER_20 = 0.0167      # N < 20: 0.0167 * FAS * N
DB_RATE_AT_20 = 0.0175         # N == 20: documented multiplier
DB_RATE_AT_20_ALT = 0.0176     # N == 20: multiplier found in the alternate code path
DB_BASE_AFTER_20 = 0.35        # N > 20: (0.35 + 0.02 * (N - 20)) * FAS
DB_RATE_AFTER_20 = 0.02
FAS_YEARS = 3                  # Trailing salaries averaged into FAS

# Cost-of-living adjustment: clip(0.5 * inflation, 1%, 3%)
COLA_INFLATION_SHARE = 0.5
COLA_FLOOR = 0.01
COLA_CAP = 0.03

# Employee contribution rate by current salary: (upper bound, rate)
EMPLOYEE_CONTRIBUTION_BRACKETS: Tuple[Tuple[float, float], ...] = (
    (45_000, 0.03),
    (55_000, 0.035),
    (75_000, 0.045),
    (100_000, 0.0575),
    (math.inf, 0.06),
)

# Employer contribution
EMPLOYER_RATE_EARLY = 0.08
EMPLOYER_RATE_LATE = 0.10
EMPLOYER_TENURE_YEARS = 7      # TENURE schedule: first 7 years of service at the early rate
EMPLOYER_AGE_CUTOFF = 34       # AGE schedule: early rate while age <= 34

MONTHS_PER_YEAR = 12


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


# =============================================================================
# Enums
# =============================================================================

class ColaMode(Enum):
    """How the DB cost-of-living adjustment is driven."""
    FIXED = "fixed"            # One COLA from long-run inflation, held constant
    BOOTSTRAP = "bootstrap"    # COLA per year from sampled retirement inflation


class EmployerSchedule(Enum):
    """Rule selecting the employer DC contribution rate."""
    TENURE = "tenure"          # 8% for the first 7 years of service, then 10%
    AGE = "age"                # 8% while age <= 34, then 10%


class ComparisonBasis(Enum):
    """Income measure used when comparing DC against DB within a trial."""
    INITIAL_MONTHLY = "initial"   # First-month income at retirement
    AVERAGE_MONTHLY = "average"   # Mean monthly income over the retirement horizon


# =============================================================================
# Asset Allocation
# =============================================================================

@dataclass(frozen=True)
class AssetAllocation:
    """Portfolio weights over the four asset classes (must sum to 1.0)."""
    us_equity: float
    intl_equity: float
    bonds: float
    short_term: float = 0.0

    @property
    def weights(self) -> np.ndarray:
        """Weights in EconomicObservation return-column order."""
        return np.array([self.us_equity, self.intl_equity, self.bonds, self.short_term])

    def validate(self) -> None:
        w = self.weights
        if np.any(w < 0):
            raise ConfigurationError(f"Allocation weights must be non-negative: {self}")
        if abs(w.sum() - 1.0) > 1e-9:
            raise ConfigurationError(f"Allocation weights must sum to 1.0, got {w.sum():.12f}")


# (max age inclusive, allocation); None marks the open-ended last band
ALLOCATION_BANDS: Tuple[Tuple[Optional[int], AssetAllocation], ...] = (
    (49, AssetAllocation(us_equity=0.60, intl_equity=0.30, bonds=0.10)),
    (59, AssetAllocation(us_equity=0.50, intl_equity=0.20, bonds=0.30)),
    (74, AssetAllocation(us_equity=0.40, intl_equity=0.10, bonds=0.50)),
    (None, AssetAllocation(us_equity=0.25, intl_equity=0.05, bonds=0.50, short_term=0.20)),
)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class CareerProfile:
    """Employee career timeline and starting pay."""
    starting_salary: float = 57_000.0
    hire_age: int = 30
    retirement_age: int = 65
    death_age: int = 85

    @property
    def years_worked(self) -> int:
        return self.retirement_age - self.hire_age

    @property
    def years_in_retirement(self) -> int:
        return self.death_age - self.retirement_age

    def validate(self) -> None:
        if not _is_number(self.starting_salary):
            raise ConfigurationError(
                f"starting_salary must be a number, got {self.starting_salary!r}")
        for name in ('hire_age', 'retirement_age', 'death_age'):
            if not _is_int(getattr(self, name)):
                raise ConfigurationError(
                    f"{name} must be a whole number of years, got {getattr(self, name)!r}")
        if not (self.starting_salary > 0 and math.isfinite(self.starting_salary)):
            raise ConfigurationError(
                f"starting_salary must be positive, got {self.starting_salary}")
        if self.hire_age < 0:
            raise ConfigurationError(f"hire_age must be non-negative, got {self.hire_age}")
        if self.years_worked < 1:
            raise ConfigurationError(
                f"retirement_age ({self.retirement_age}) must exceed hire_age ({self.hire_age})")
        if self.retirement_age >= self.death_age:
            raise ConfigurationError(
                f"retirement_age ({self.retirement_age}) must be below death_age ({self.death_age})")


@dataclass
class DBParams:
    """Defined-benefit plan parameters."""
    rate_at_20: float = DB_RATE_AT_20          # Accrual multiplier at exactly 20 years
    cola_mode: ColaMode = ColaMode.FIXED
    long_run_inflation: Optional[float] = None # FIXED mode; None = history mean

    def validate(self) -> None:
        if not _is_number(self.rate_at_20):
            raise ConfigurationError(f"rate_at_20 must be a number, got {self.rate_at_20!r}")
        if not (0 < self.rate_at_20 < 1):
            raise ConfigurationError(f"rate_at_20 must be in (0, 1), got {self.rate_at_20}")
        if not isinstance(self.cola_mode, ColaMode):
            raise ConfigurationError(f"Unknown COLA mode: {self.cola_mode!r}")
        if self.long_run_inflation is not None and not (
                _is_number(self.long_run_inflation) and math.isfinite(self.long_run_inflation)):
            raise ConfigurationError(
                f"long_run_inflation must be a finite number, got {self.long_run_inflation!r}")


@dataclass
class DCParams:
    """Defined-contribution plan parameters."""
    withdrawal_rate: float = 0.04              # Annual share of retirement balance withdrawn
    employer_schedule: EmployerSchedule = EmployerSchedule.TENURE
    initial_balance: float = 0.0

    def validate(self) -> None:
        for name in ('withdrawal_rate', 'initial_balance'):
            if not _is_number(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a number, got {getattr(self, name)!r}")
        if not (0 < self.withdrawal_rate <= 1):
            raise ConfigurationError(
                f"withdrawal_rate must be in (0, 1], got {self.withdrawal_rate}")
        if not isinstance(self.employer_schedule, EmployerSchedule):
            raise ConfigurationError(f"Unknown employer schedule: {self.employer_schedule!r}")
        if not (self.initial_balance >= 0 and math.isfinite(self.initial_balance)):
            raise ConfigurationError(
                f"initial_balance must be non-negative, got {self.initial_balance}")


@dataclass
class MonteCarloParams:
    """Parameters for the bootstrap Monte Carlo batch."""
    n_trials: int = 200          # Number of independent trials
    random_seed: int = 42        # Root seed; each trial gets a spawned child seed
    n_workers: int = 1           # >1 runs trials on a process pool

    def validate(self) -> None:
        if not _is_int(self.n_trials) or self.n_trials < 1:
            raise ConfigurationError(f"n_trials must be an integer >= 1, got {self.n_trials!r}")
        if not _is_int(self.random_seed) or self.random_seed < 0:
            raise ConfigurationError(
                f"random_seed must be a non-negative integer, got {self.random_seed!r}")
        if not _is_int(self.n_workers) or self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be an integer >= 1, got {self.n_workers!r}")


@dataclass
class SimulationConfig:
    """Complete, explicit configuration for one simulation run."""
    career: CareerProfile = field(default_factory=CareerProfile)
    db: DBParams = field(default_factory=DBParams)
    dc: DCParams = field(default_factory=DCParams)
    monte_carlo: MonteCarloParams = field(default_factory=MonteCarloParams)

    def validate(self) -> None:
        """Raise ConfigurationError on the first invalid setting."""
        self.career.validate()
        self.db.validate()
        self.dc.validate()
        self.monte_carlo.validate()
        for _, allocation in ALLOCATION_BANDS:
            allocation.validate()

    def to_dict(self) -> dict:
        data = asdict(self)
        data['db']['cola_mode'] = self.db.cola_mode.value
        data['dc']['employer_schedule'] = self.dc.employer_schedule.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'SimulationConfig':
        """Build a config from plain values (e.g. parsed JSON); unknown keys are rejected."""
        try:
            db = dict(data.get('db', {}))
            if 'cola_mode' in db:
                db['cola_mode'] = ColaMode(db['cola_mode'])
            dc = dict(data.get('dc', {}))
            if 'employer_schedule' in dc:
                dc['employer_schedule'] = EmployerSchedule(dc['employer_schedule'])
            return cls(
                career=CareerProfile(**data.get('career', {})),
                db=DBParams(**db),
                dc=DCParams(**dc),
                monte_carlo=MonteCarloParams(**data.get('monte_carlo', {})),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_config(path: str) -> SimulationConfig:
    """Load a SimulationConfig from a JSON file written by save_config."""
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read configuration {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must hold a JSON object")
    return SimulationConfig.from_dict(data)


def save_config(config: SimulationConfig, path: str) -> None:
    """Persist a configuration as JSON."""
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)


# =============================================================================
# Result Dataclasses
# =============================================================================

@dataclass(frozen=True)
class DBResult:
    """Defined-benefit outcome for one sampled path."""
    annual_benefit: float
    initial_monthly_income: float
    income_path: np.ndarray                    # [years_in_retirement] monthly income
    cola_path: np.ndarray                      # [years_in_retirement] COLA applied entering each year
    average_monthly_income: Optional[float]    # None when the horizon is empty


@dataclass(frozen=True)
class DCResult:
    """Defined-contribution outcome for one sampled path."""
    balance_at_retirement: float
    monthly_withdrawal: float
    total_contributions: float
    working_balance_path: np.ndarray           # [years_worked] end-of-year balance
    account_path: np.ndarray                   # [years_in_retirement] end-of-year balance
    income_path: np.ndarray                    # [years_in_retirement] monthly income paid
    average_monthly_income: Optional[float]
    depleted: bool
    depletion_age: Optional[int]


@dataclass(frozen=True)
class TrialOutcome:
    """
    Result of one simulation trial.

    Immutable once produced; optional values use None rather than a
    sentinel number.
    """
    trial_index: int
    final_average_salary: Optional[float]
    salary_path: np.ndarray

    db_monthly_income_at_retirement: float
    db_income_path: np.ndarray
    db_average_monthly_income: Optional[float]

    dc_monthly_income_at_retirement: float     # Paid in the first retirement year
    dc_income_path: np.ndarray
    dc_average_monthly_income: Optional[float]
    dc_balance_at_retirement: float
    dc_account_path: np.ndarray
    dc_depleted: bool
    dc_depletion_age: Optional[int]

    def dc_exceeds_db(self, basis: ComparisonBasis) -> Optional[bool]:
        """True if DC income beats DB income on the given basis; None if not applicable."""
        if basis is ComparisonBasis.INITIAL_MONTHLY:
            return self.dc_monthly_income_at_retirement > self.db_monthly_income_at_retirement
        if self.dc_average_monthly_income is None or self.db_average_monthly_income is None:
            return None
        return self.dc_average_monthly_income > self.db_average_monthly_income


@dataclass(frozen=True)
class TrialFailure:
    """A trial that raised during computation and was excluded."""
    trial_index: int
    error_type: str
    message: str


@dataclass
class BatchResult:
    """
    All trials of one Monte Carlo run.

    Outcomes are ordered by trial index. Failed trials are kept separately so
    aggregate statistics can report how many trials they rest on.
    """
    config: SimulationConfig
    outcomes: List[TrialOutcome]
    failures: List[TrialFailure] = field(default_factory=list)
    cancelled: bool = False
    long_run_inflation: float = 0.0

    @property
    def n_requested(self) -> int:
        return self.config.monte_carlo.n_trials

    @property
    def n_successful(self) -> int:
        return len(self.outcomes)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    @property
    def n_not_run(self) -> int:
        """Trials skipped because the batch was cancelled."""
        return self.n_requested - self.n_successful - self.n_failed

    @property
    def retirement_ages(self) -> np.ndarray:
        career = self.config.career
        return np.arange(career.retirement_age, career.death_age)

    def income_paths(self, plan: str = 'dc') -> np.ndarray:
        """Stack monthly income paths into [n_successful, years_in_retirement]."""
        attr = 'dc_income_path' if plan == 'dc' else 'db_income_path'
        n_years = self.config.career.years_in_retirement
        if not self.outcomes:
            return np.empty((0, n_years))
        return np.vstack([getattr(o, attr) for o in self.outcomes])

    def account_paths(self) -> np.ndarray:
        """Stack DC retirement balance paths into [n_successful, years_in_retirement]."""
        n_years = self.config.career.years_in_retirement
        if not self.outcomes:
            return np.empty((0, n_years))
        return np.vstack([o.dc_account_path for o in self.outcomes])

    def to_frame(self) -> pd.DataFrame:
        """One row per successful trial, for the reporting layer."""
        rows = [{
            'trial': o.trial_index,
            'final_average_salary': o.final_average_salary,
            'db_initial_monthly': o.db_monthly_income_at_retirement,
            'db_average_monthly': o.db_average_monthly_income,
            'dc_initial_monthly': o.dc_monthly_income_at_retirement,
            'dc_average_monthly': o.dc_average_monthly_income,
            'dc_balance_at_retirement': o.dc_balance_at_retirement,
            'dc_depleted': o.dc_depleted,
            'dc_depletion_age': o.dc_depletion_age,
        } for o in self.outcomes]
        frame = pd.DataFrame(rows, columns=[
            'trial', 'final_average_salary', 'db_initial_monthly', 'db_average_monthly',
            'dc_initial_monthly', 'dc_average_monthly', 'dc_balance_at_retirement',
            'dc_depleted', 'dc_depletion_age',
        ])
        frame['dc_depletion_age'] = frame['dc_depletion_age'].astype('Int64')
        return frame.set_index('trial')
