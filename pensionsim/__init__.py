"""
Core package for the defined-benefit vs defined-contribution pension comparison.

This package provides the components of the bootstrap simulation:
- Parameter and result dataclasses (params.py)
- Historical observations and the bootstrap path sampler (history.py, sampler.py)
- Economic primitives: salary, accrual, COLA, contributions, allocation (economics.py)
- Plan calculators (plans.py)
- Trial orchestration and cross-trial aggregation (simulation.py, aggregation.py)
"""

# Errors
from .errors import (
    PensionSimError,
    ConfigurationError,
    SamplingError,
    ComputationError,
)

# Parameters, constants and results
from .params import (
    DB_RATE_UNDER_20,
    DB_RATE_AT_20,
    DB_RATE_AT_20_ALT,
    ALLOCATION_BANDS,
    AssetAllocation,
    ColaMode,
    EmployerSchedule,
    ComparisonBasis,
    CareerProfile,
    DBParams,
    DCParams,
    MonteCarloParams,
    SimulationConfig,
    load_config,
    save_config,
    DBResult,
    DCResult,
    TrialOutcome,
    TrialFailure,
    BatchResult,
)

# Historical data and sampling
from .history import EconomicObservation, EconomicHistory
from .sampler import EconomicPath, EconomicPathSampler, constant_path

# Economic primitives
from .economics import (
    next_salary,
    project_salary_path,
    final_average_salary,
    db_annual_benefit,
    cola_rate,
    employee_contribution_rate,
    employer_contribution_rate,
    allocation_for_age,
    blended_return,
)

# Plan calculators
from .plans import DefinedBenefitPlan, DefinedContributionPlan

# Simulation engines
from .simulation import (
    build_plans,
    run_trial,
    run_monte_carlo,
    run_deterministic_projection,
)

# Aggregation
from .aggregation import (
    ProbabilityEstimate,
    OutcomeSummary,
    aggregate_outcomes,
    wilson_interval,
)

__all__ = [
    # Errors
    'PensionSimError',
    'ConfigurationError',
    'SamplingError',
    'ComputationError',
    # Constants
    'DB_RATE_UNDER_20',
    'DB_RATE_AT_20',
    'DB_RATE_AT_20_ALT',
    'ALLOCATION_BANDS',
    # Params
    'AssetAllocation',
    'ColaMode',
    'EmployerSchedule',
    'ComparisonBasis',
    'CareerProfile',
    'DBParams',
    'DCParams',
    'MonteCarloParams',
    'SimulationConfig',
    'load_config',
    'save_config',
    # Results
    'DBResult',
    'DCResult',
    'TrialOutcome',
    'TrialFailure',
    'BatchResult',
    # Data and sampling
    'EconomicObservation',
    'EconomicHistory',
    'EconomicPath',
    'EconomicPathSampler',
    'constant_path',
    # Economics
    'next_salary',
    'project_salary_path',
    'final_average_salary',
    'db_annual_benefit',
    'cola_rate',
    'employee_contribution_rate',
    'employer_contribution_rate',
    'allocation_for_age',
    'blended_return',
    # Plans
    'DefinedBenefitPlan',
    'DefinedContributionPlan',
    # Simulation
    'build_plans',
    'run_trial',
    'run_monte_carlo',
    'run_deterministic_projection',
    # Aggregation
    'ProbabilityEstimate',
    'OutcomeSummary',
    'aggregate_outcomes',
    'wilson_interval',
]
