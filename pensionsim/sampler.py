"""
Bootstrap sampler for synthetic working-period and retirement-period paths.

Every row of a sampled path is drawn uniformly at random, with replacement,
from the historical observations; temporal order in the history is ignored.
The sampler owns no random state of its own: it draws from the Generator it
is given, so each trial can be handed an independently seeded Generator.
"""

import numpy as np
from dataclasses import dataclass

from .errors import ConfigurationError, SamplingError
from .history import EconomicHistory, EconomicObservation, WAGE_GROWTH, INFLATION


@dataclass(frozen=True)
class EconomicPath:
    """Sampled observations for one trial, one row per simulated year."""
    working: np.ndarray        # [years_working, 6]
    retirement: np.ndarray     # [years_retired, 6]

    @property
    def wage_growth(self) -> np.ndarray:
        return self.working[:, WAGE_GROWTH]

    @property
    def working_inflation(self) -> np.ndarray:
        return self.working[:, INFLATION]

    @property
    def retirement_inflation(self) -> np.ndarray:
        return self.retirement[:, INFLATION]


def constant_path(
    observation: EconomicObservation,
    years_working: int,
    years_retired: int,
) -> EconomicPath:
    """Path repeating one observation for every year (deterministic projection)."""
    row = observation.as_array()
    return EconomicPath(
        working=np.tile(row, (years_working, 1)),
        retirement=np.tile(row, (years_retired, 1)),
    )


class EconomicPathSampler:
    """
    Draws independent working and retirement paths from a shared history.

    Args:
        history: Read-only historical observations (shared across trials)
        rng: Generator owned by the caller; one per trial for parallel safety
        replace: Draw with replacement (the bootstrap). False is only for
            experiments and requires enough history to cover each path.
    """

    def __init__(self, history: EconomicHistory, rng: np.random.Generator, replace: bool = True):
        if len(history) == 0:
            raise ConfigurationError("Historical observation set is empty")
        self.history = history
        self.rng = rng
        self.replace = replace

    def draw(self, n_years: int) -> np.ndarray:
        """Draw n_years observations as an [n_years, 6] array."""
        if n_years <= 0:
            raise ConfigurationError(f"Requested path length must be positive, got {n_years}")
        if not self.replace and n_years > len(self.history):
            raise SamplingError(
                f"Cannot draw {n_years} observations without replacement "
                f"from a history of {len(self.history)}")
        idx = self.rng.choice(len(self.history), size=n_years, replace=self.replace)
        return self.history.data[idx]

    def sample(self, years_working: int, years_retired: int) -> EconomicPath:
        """Draw a working path and an independent retirement path."""
        working = self.draw(years_working)
        retirement = self.draw(years_retired)
        return EconomicPath(working=working, retirement=retirement)
