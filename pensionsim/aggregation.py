"""
Cross-trial aggregation of simulation outcomes.

Turns a BatchResult into histogram-ready income samples and headline
probabilities. Every probability carries the number of trials it rests on
and a 95% Wilson score interval: a 200-trial estimate is noisy, and the
interval makes that visible instead of hiding it behind a point estimate.

Comparison basis for "DC income exceeds DB income" is fixed per estimate:
- p_dc_exceeds_db_average compares mean monthly income over retirement
  (the headline, since it accounts for COLA growth and DC depletion)
- p_dc_exceeds_db_initial compares first-month income at retirement
"""

import math
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import List, Optional

from .params import BatchResult, ComparisonBasis

# Two-sided 95% normal quantile
Z_95 = 1.959963984540054

HEADLINE_BASIS = ComparisonBasis.AVERAGE_MONTHLY

NOT_APPLICABLE = 'not applicable'

INCOME_FIELDS = ('db_initial_income', 'db_average_income', 'dc_initial_income', 'dc_average_income')


def wilson_interval(successes: int, n: int, z: float = Z_95):
    """Wilson score interval for a binomial proportion; (None, None) when n == 0."""
    if n == 0:
        return None, None
    p = successes / n
    denom = 1.0 + z * z / n
    centre = (p + z * z / (2 * n)) / denom
    half = z * math.sqrt(p * (1 - p) / n + z * z / (4 * n * n)) / denom
    # Exact bounds at 0 and n; rounding must not push the point outside
    low = 0.0 if successes == 0 else min(max(0.0, centre - half), p)
    high = 1.0 if successes == n else max(min(1.0, centre + half), p)
    return low, high


@dataclass(frozen=True)
class ProbabilityEstimate:
    """Binomial proportion estimated from n trials."""
    successes: int
    n: int
    point: Optional[float]
    ci_low: Optional[float]
    ci_high: Optional[float]

    @classmethod
    def from_counts(cls, successes: int, n: int) -> 'ProbabilityEstimate':
        low, high = wilson_interval(successes, n)
        point = successes / n if n > 0 else None
        return cls(successes=successes, n=n, point=point, ci_low=low, ci_high=high)

    def __str__(self) -> str:
        if self.point is None:
            return "n/a (n=0)"
        return f"{self.point:.1%} [{self.ci_low:.1%}, {self.ci_high:.1%}] (n={self.n})"


@dataclass
class OutcomeSummary:
    """Distributional summary of one batch for the reporting layer."""
    n_requested: int
    n_successful: int
    n_failed: int
    n_not_run: int
    cancelled: bool

    # Histogram-ready samples (monthly income); averages exclude "not applicable" trials
    db_initial_income: np.ndarray
    db_average_income: np.ndarray
    dc_initial_income: np.ndarray
    dc_average_income: np.ndarray
    n_average_not_applicable: int

    dc_balance_at_retirement: np.ndarray
    dc_depletion_ages: np.ndarray          # One entry per depleted trial

    p_dc_depleted: ProbabilityEstimate
    p_dc_exceeds_db_average: ProbabilityEstimate
    p_dc_exceeds_db_initial: ProbabilityEstimate

    def p_dc_exceeds_db(self, basis: ComparisonBasis = HEADLINE_BASIS) -> ProbabilityEstimate:
        if basis is ComparisonBasis.INITIAL_MONTHLY:
            return self.p_dc_exceeds_db_initial
        return self.p_dc_exceeds_db_average

    def percentile(self, field: str, percentiles: List[int] = None) -> Optional[np.ndarray]:
        """
        Percentiles of one sample array.

        Args:
            field: Name of field (e.g., 'dc_average_income')
            percentiles: Percentiles to compute (default 5, 25, 50, 75, 95)

        Returns:
            Array of percentile values, or None if the sample is empty
        """
        if percentiles is None:
            percentiles = [5, 25, 50, 75, 95]
        data = getattr(self, field)
        if len(data) == 0:
            return None
        return np.percentile(data, percentiles)

    def summary_frame(self, percentiles: List[int] = None) -> pd.DataFrame:
        """
        Mean and percentiles of each income sample, one row per measure.

        A measure with no applicable trials gets status 'not applicable'; its
        statistics are left blank and must not be read as numbers.
        """
        if percentiles is None:
            percentiles = [5, 25, 50, 75, 95]
        rows = {}
        for name in INCOME_FIELDS + ('dc_balance_at_retirement',):
            data = getattr(self, name)
            pct = self.percentile(name, percentiles)
            row = {'n': len(data), 'mean': float(np.mean(data)) if len(data) else np.nan}
            for p, value in zip(percentiles, pct if pct is not None else [np.nan] * len(percentiles)):
                row[f'p{p}'] = value
            row['status'] = 'ok' if len(data) else NOT_APPLICABLE
            rows[name] = row
        return pd.DataFrame.from_dict(rows, orient='index')

    def probability_frame(self) -> pd.DataFrame:
        """Headline probabilities with their sample sizes and intervals."""
        estimates = {
            'dc_depleted': self.p_dc_depleted,
            'dc_exceeds_db_average_monthly': self.p_dc_exceeds_db_average,
            'dc_exceeds_db_initial_monthly': self.p_dc_exceeds_db_initial,
        }
        return pd.DataFrame.from_dict({
            name: {'successes': e.successes, 'n': e.n, 'point': e.point,
                   'ci_low': e.ci_low, 'ci_high': e.ci_high}
            for name, e in estimates.items()
        }, orient='index')


def aggregate_outcomes(batch: BatchResult) -> OutcomeSummary:
    """Summarise all successful trials of a batch."""
    outcomes = batch.outcomes
    n = len(outcomes)

    db_initial = np.array([o.db_monthly_income_at_retirement for o in outcomes], dtype=float)
    dc_initial = np.array([o.dc_monthly_income_at_retirement for o in outcomes], dtype=float)

    comparable = [o for o in outcomes
                  if o.db_average_monthly_income is not None and o.dc_average_monthly_income is not None]
    db_average = np.array([o.db_average_monthly_income for o in comparable], dtype=float)
    dc_average = np.array([o.dc_average_monthly_income for o in comparable], dtype=float)

    depletion_ages = np.array([o.dc_depletion_age for o in outcomes if o.dc_depleted], dtype=int)
    n_depleted = sum(1 for o in outcomes if o.dc_depleted)
    n_exceeds_initial = sum(1 for o in outcomes if o.dc_exceeds_db(ComparisonBasis.INITIAL_MONTHLY))
    n_exceeds_average = sum(1 for o in comparable if o.dc_exceeds_db(ComparisonBasis.AVERAGE_MONTHLY))

    return OutcomeSummary(
        n_requested=batch.n_requested,
        n_successful=n,
        n_failed=batch.n_failed,
        n_not_run=batch.n_not_run,
        cancelled=batch.cancelled,
        db_initial_income=db_initial,
        db_average_income=db_average,
        dc_initial_income=dc_initial,
        dc_average_income=dc_average,
        n_average_not_applicable=n - len(comparable),
        dc_balance_at_retirement=np.array([o.dc_balance_at_retirement for o in outcomes], dtype=float),
        dc_depletion_ages=depletion_ages,
        p_dc_depleted=ProbabilityEstimate.from_counts(n_depleted, n),
        p_dc_exceeds_db_average=ProbabilityEstimate.from_counts(n_exceeds_average, len(comparable)),
        p_dc_exceeds_db_initial=ProbabilityEstimate.from_counts(n_exceeds_initial, n),
    )
