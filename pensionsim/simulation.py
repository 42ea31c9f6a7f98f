"""
Trial orchestration for the bootstrap DB vs DC comparison.

A trial moves through SAMPLE -> SALARY_PROJECT -> {DB, DC} -> COLLECT and
touches nothing but its own sampled path and its own Generator. Trials are
independent, so a batch can run sequentially or on a process pool and give
identical results: every trial's Generator is seeded from a child of one
root SeedSequence, keyed by trial index rather than by execution order.
"""

import math
import logging
import threading
import numpy as np
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import List, Optional, Tuple, Union

from .errors import PensionSimError, ConfigurationError, ComputationError
from .history import EconomicHistory, EconomicObservation
from .params import (
    SimulationConfig,
    TrialOutcome,
    TrialFailure,
    BatchResult,
)
from .sampler import EconomicPath, EconomicPathSampler, constant_path
from .economics import project_salary_path, final_average_salary
from .plans import DefinedBenefitPlan, DefinedContributionPlan

logger = logging.getLogger(__name__)

# Errors that fail a single trial without aborting the batch
TRIAL_ERRORS = (PensionSimError, ArithmeticError, ValueError)

TrialResult = Union[TrialOutcome, TrialFailure]


# =============================================================================
# Helpers
# =============================================================================

def build_plans(config: SimulationConfig) -> Tuple[DefinedBenefitPlan, DefinedContributionPlan]:
    """Instantiate both plan calculators from configuration."""
    db_plan = DefinedBenefitPlan(
        rate_at_20=config.db.rate_at_20,
        cola_mode=config.db.cola_mode,
    )
    dc_plan = DefinedContributionPlan(
        withdrawal_rate=config.dc.withdrawal_rate,
        employer_schedule=config.dc.employer_schedule,
        initial_balance=config.dc.initial_balance,
    )
    return db_plan, dc_plan


def resolve_long_run_inflation(config: SimulationConfig, history: EconomicHistory) -> float:
    """Configured long-run inflation, or the historical mean when unset."""
    if config.db.long_run_inflation is not None:
        return config.db.long_run_inflation
    return history.long_run_inflation()


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


# =============================================================================
# Single Trial
# =============================================================================

def run_trial(
    config: SimulationConfig,
    path: EconomicPath,
    long_run_inflation: float,
    trial_index: int = 0,
) -> TrialOutcome:
    """
    Run both plans over one sampled path.

    The retirement horizon is the length of path.retirement, so an empty
    retirement path yields empty income paths and None averages.
    """
    if not (np.all(np.isfinite(path.working)) and np.all(np.isfinite(path.retirement))):
        raise ComputationError(f"Trial {trial_index}: sampled path has non-finite observations")

    career = config.career
    salary_path = project_salary_path(career.starting_salary, path.wage_growth, path.working_inflation)

    db_plan, dc_plan = build_plans(config)
    db = db_plan(
        salary_path,
        years_in_retirement=len(path.retirement),
        long_run_inflation=long_run_inflation,
        retirement_inflation=path.retirement_inflation,
    )
    dc = dc_plan(
        salary_path,
        working=path.working,
        retirement=path.retirement,
        hire_age=career.hire_age,
        retirement_age=career.retirement_age,
    )

    return TrialOutcome(
        trial_index=trial_index,
        final_average_salary=final_average_salary(salary_path),
        salary_path=_frozen(salary_path),
        db_monthly_income_at_retirement=db.initial_monthly_income,
        db_income_path=_frozen(db.income_path),
        db_average_monthly_income=db.average_monthly_income,
        dc_monthly_income_at_retirement=dc.income_path[0] if len(dc.income_path) else dc.monthly_withdrawal,
        dc_income_path=_frozen(dc.income_path),
        dc_average_monthly_income=dc.average_monthly_income,
        dc_balance_at_retirement=dc.balance_at_retirement,
        dc_account_path=_frozen(dc.account_path),
        dc_depleted=dc.depleted,
        dc_depletion_age=dc.depletion_age,
    )


def _run_seeded_trial(
    config: SimulationConfig,
    history: EconomicHistory,
    long_run_inflation: float,
    trial_index: int,
    seed_seq: np.random.SeedSequence,
) -> TrialResult:
    """Sample a fresh path with a trial-local Generator and run it; record failures."""
    rng = np.random.default_rng(seed_seq)
    career = config.career
    try:
        path = EconomicPathSampler(history, rng).sample(career.years_worked, career.years_in_retirement)
        outcome = run_trial(config, path, long_run_inflation, trial_index)
    except TRIAL_ERRORS as exc:
        logger.warning("Trial %d failed: %s: %s", trial_index, type(exc).__name__, exc)
        return TrialFailure(trial_index=trial_index, error_type=type(exc).__name__, message=str(exc))
    logger.debug("Trial %d: DB %.2f/mo, DC %.2f/mo, depleted=%s",
                 trial_index, outcome.db_monthly_income_at_retirement,
                 outcome.dc_monthly_income_at_retirement, outcome.dc_depleted)
    return outcome


def _run_trial_chunk(
    config: SimulationConfig,
    history: EconomicHistory,
    long_run_inflation: float,
    chunk: List[Tuple[int, np.random.SeedSequence]],
) -> List[TrialResult]:
    """Worker entry point: run a contiguous block of trials."""
    return [_run_seeded_trial(config, history, long_run_inflation, idx, seq) for idx, seq in chunk]


# =============================================================================
# Batch
# =============================================================================

def _run_sequential(
    config: SimulationConfig,
    history: EconomicHistory,
    long_run_inflation: float,
    tasks: List[Tuple[int, np.random.SeedSequence]],
    cancel_event: Optional[threading.Event],
) -> Tuple[List[TrialResult], bool]:
    results = []
    for idx, seq in tasks:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Cancellation requested at trial %d/%d", idx, len(tasks))
            return results, True
        results.append(_run_seeded_trial(config, history, long_run_inflation, idx, seq))
    return results, False


def _run_parallel(
    config: SimulationConfig,
    history: EconomicHistory,
    long_run_inflation: float,
    tasks: List[Tuple[int, np.random.SeedSequence]],
    cancel_event: Optional[threading.Event],
) -> Tuple[List[TrialResult], bool]:
    n_workers = config.monte_carlo.n_workers
    chunk_size = max(1, math.ceil(len(tasks) / (n_workers * 4)))
    chunks = [tasks[i:i + chunk_size] for i in range(0, len(tasks), chunk_size)]

    results = []
    with ProcessPoolExecutor(max_workers=n_workers) as executor:
        futures = [
            executor.submit(_run_trial_chunk, config, history, long_run_inflation, chunk)
            for chunk in chunks
        ]
        for future in as_completed(futures):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Cancellation requested during parallel execution "
                            "(%d/%d trials collected)", len(results), len(tasks))
                for pending in futures:
                    pending.cancel()
                return results, True
            results.extend(future.result())
    return results, False


def run_monte_carlo(
    config: SimulationConfig,
    history: EconomicHistory,
    cancel_event: Optional[threading.Event] = None,
) -> BatchResult:
    """
    Run the bootstrap Monte Carlo comparison of the two plans.

    The whole configuration is validated before any trial runs. Trials that
    raise are recorded as TrialFailure and excluded from the outcomes.

    Args:
        config: Career, plan and Monte Carlo settings (seed included)
        history: Shared, read-only historical observations
        cancel_event: Set it from another thread to stop between trials;
            trials already collected are kept

    Returns:
        BatchResult with outcomes ordered by trial index
    """
    config.validate()
    if len(history) == 0:
        raise ConfigurationError("Historical observation set is empty")

    mc = config.monte_carlo
    long_run_inflation = resolve_long_run_inflation(config, history)
    children = np.random.SeedSequence(mc.random_seed).spawn(mc.n_trials)
    tasks = list(enumerate(children))

    logger.info("Running %d trials over %d historical periods (seed=%d, workers=%d)",
                mc.n_trials, len(history), mc.random_seed, mc.n_workers)

    if mc.n_workers > 1:
        results, cancelled = _run_parallel(config, history, long_run_inflation, tasks, cancel_event)
    else:
        results, cancelled = _run_sequential(config, history, long_run_inflation, tasks, cancel_event)

    outcomes = sorted((r for r in results if isinstance(r, TrialOutcome)), key=lambda r: r.trial_index)
    failures = sorted((r for r in results if isinstance(r, TrialFailure)), key=lambda r: r.trial_index)

    if failures:
        logger.warning("%d of %d trials failed and were excluded", len(failures), mc.n_trials)
    logger.info("Collected %d successful trials%s", len(outcomes), " (cancelled)" if cancelled else "")

    return BatchResult(
        config=config,
        outcomes=outcomes,
        failures=failures,
        cancelled=cancelled,
        long_run_inflation=long_run_inflation,
    )


def run_deterministic_projection(
    config: SimulationConfig,
    history: Optional[EconomicHistory] = None,
    observation: Optional[EconomicObservation] = None,
) -> TrialOutcome:
    """
    Single projection with the same observation in every year.

    Uses the given observation, or the history's long-run means. With a
    constant path there is no sampling variance, so the result is exactly
    reproducible.
    """
    config.career.validate()
    config.db.validate()
    config.dc.validate()

    if observation is None:
        if history is None:
            raise ConfigurationError("Need either a history or an observation to project")
        observation = history.long_run_means()

    long_run_inflation = config.db.long_run_inflation
    if long_run_inflation is None:
        long_run_inflation = observation.inflation_rate

    career = config.career
    path = constant_path(observation, career.years_worked, career.years_in_retirement)
    return run_trial(config, path, long_run_inflation)
