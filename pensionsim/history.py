"""
Historical economic observations consumed by the bootstrap sampler.

Each observation is one period's simultaneous readings of the six rates the
simulation needs. The history is stored as a read-only (n, 6) array so that
it can be shared by every trial (and shipped to worker processes) without
copying or locking.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass, astuple, fields
from typing import Iterable, Sequence

from .errors import ConfigurationError


@dataclass(frozen=True)
class EconomicObservation:
    """One period's rates, all as fractional per-period values."""
    us_equity_return: float
    intl_equity_return: float
    bond_return: float
    wage_growth_rate: float
    inflation_rate: float
    short_term_rate: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array(astuple(self), dtype=float)


# Column order shared by every array of observations
FIELDS = tuple(f.name for f in fields(EconomicObservation))
US_EQUITY, INTL_EQUITY, BONDS, WAGE_GROWTH, INFLATION, SHORT_TERM = range(len(FIELDS))

# Return columns in AssetAllocation weight order
RETURN_COLUMNS = [US_EQUITY, INTL_EQUITY, BONDS, SHORT_TERM]


class EconomicHistory:
    """
    Immutable, ordered set of historical observations.

    Order is kept for display only; bootstrap sampling treats the rows as an
    unordered set.
    """

    def __init__(self, data: np.ndarray):
        data = np.array(data, dtype=float, copy=True)
        if data.ndim != 2 or data.shape[1] != len(FIELDS):
            raise ConfigurationError(
                f"History must have shape (n, {len(FIELDS)}), got {data.shape}")
        if not np.all(np.isfinite(data)):
            bad_rows = np.where(~np.all(np.isfinite(data), axis=1))[0]
            raise ConfigurationError(
                f"History contains missing or non-finite values in rows {bad_rows[:10].tolist()}")
        data.setflags(write=False)
        self._data = data

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_observations(cls, observations: Iterable[EconomicObservation]) -> 'EconomicHistory':
        rows = [obs.as_array() for obs in observations]
        if not rows:
            return cls(np.empty((0, len(FIELDS))))
        return cls(np.vstack(rows))

    @classmethod
    def constant(cls, observation: EconomicObservation, n_periods: int = 1) -> 'EconomicHistory':
        """Synthetic history repeating one observation (no sampling variance)."""
        return cls(np.tile(observation.as_array(), (n_periods, 1)))

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        periods_per_year: int = 1,
        columns: Sequence[str] = FIELDS,
    ) -> 'EconomicHistory':
        """
        Build a history from a tabular loader's output.

        Args:
            df: Frame with one row per period and the six rate columns
            periods_per_year: 1 if rows are already annual rates; 12 for monthly
                rows, which are compounded into annual rates over consecutive
                12-row blocks (an incomplete trailing block is dropped)
            columns: Source column names in EconomicObservation field order

        Returns:
            EconomicHistory with one annual observation per row/block
        """
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ConfigurationError(f"History frame is missing columns: {missing}")
        if periods_per_year < 1:
            raise ConfigurationError(f"periods_per_year must be positive, got {periods_per_year}")

        try:
            values = df.loc[:, list(columns)].apply(pd.to_numeric, errors='raise').to_numpy(dtype=float)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"History frame has non-numeric values: {exc}") from exc

        if periods_per_year > 1:
            n_blocks = len(values) // periods_per_year
            blocks = values[:n_blocks * periods_per_year].reshape(n_blocks, periods_per_year, -1)
            values = np.prod(1.0 + blocks, axis=1) - 1.0

        return cls(values)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def data(self) -> np.ndarray:
        """Read-only (n, 6) array of observations."""
        return self._data

    def __len__(self) -> int:
        return self._data.shape[0]

    def __getitem__(self, index: int) -> EconomicObservation:
        return EconomicObservation(*self._data[index].tolist())

    def long_run_means(self) -> EconomicObservation:
        """Column means over the whole history."""
        if len(self) == 0:
            raise ConfigurationError("Cannot compute long-run means of an empty history")
        return EconomicObservation(*self._data.mean(axis=0).tolist())

    def long_run_inflation(self) -> float:
        return self.long_run_means().inflation_rate

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._data, columns=list(FIELDS))

    def __repr__(self) -> str:
        return f"EconomicHistory(n_periods={len(self)})"
