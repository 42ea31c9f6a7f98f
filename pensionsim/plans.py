"""
Plan calculators for the pension comparison.

Each plan is a small dataclass holding its rule parameters and mapping one
trial's salary path and sampled observations to a result record:
- DefinedBenefitPlan: tiered accrual annuity with capped COLA
- DefinedContributionPlan: contribution accrual, age-banded investment,
  fixed systematic withdrawal with depletion tracking

The year-by-year loops are strictly sequential within a trial (each year's
balance depends on the previous one); parallelism happens across trials.
"""

import math
import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ComputationError
from .params import (
    ColaMode,
    EmployerSchedule,
    DBResult,
    DCResult,
    DB_RATE_AT_20,
    MONTHS_PER_YEAR,
)
from .economics import (
    final_average_salary,
    db_annual_benefit,
    cola_rate,
    employee_contribution_rate,
    employer_contribution_rate,
    allocation_for_age,
    blended_return,
)

logger = logging.getLogger(__name__)


def _mean_or_none(values: np.ndarray) -> Optional[float]:
    """Average over a horizon, or None ("not applicable") when it is empty."""
    if len(values) == 0:
        return None
    return float(np.mean(values))


def _require_finite(value: float, what: str, age: int) -> None:
    if not math.isfinite(value):
        raise ComputationError(f"Non-finite {what} ({value}) at age {age}")


@dataclass
class DefinedBenefitPlan:
    """
    Defined-benefit annuity.

    The initial benefit comes from the tiered accrual formula applied to final
    average salary and years of service. Each later retirement year the
    monthly benefit grows by (1 + COLA), with COLA = clip(0.5 * inflation,
    1%, 3%).

    Attributes:
        rate_at_20: Accrual multiplier at exactly 20 years of service
        cola_mode: FIXED uses one long-run inflation figure for every year;
            BOOTSTRAP uses the prior retirement year's sampled inflation
        name: Plan name for display
    """
    rate_at_20: float = DB_RATE_AT_20
    cola_mode: ColaMode = ColaMode.FIXED
    name: str = "DB"

    def cola_path(
        self,
        years_in_retirement: int,
        long_run_inflation: float,
        retirement_inflation: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """COLA applied entering each retirement year (0 for the first year)."""
        colas = np.zeros(years_in_retirement)
        if years_in_retirement <= 1:
            return colas
        if self.cola_mode is ColaMode.FIXED:
            colas[1:] = cola_rate(long_run_inflation)
        else:
            if retirement_inflation is None or len(retirement_inflation) < years_in_retirement - 1:
                raise ComputationError("Bootstrap COLA needs sampled inflation for every retirement year")
            colas[1:] = cola_rate(retirement_inflation[:years_in_retirement - 1])
        return colas

    def __call__(
        self,
        salary_path: np.ndarray,
        years_in_retirement: int,
        long_run_inflation: float,
        retirement_inflation: Optional[np.ndarray] = None,
    ) -> DBResult:
        years_worked = len(salary_path)
        fas = final_average_salary(salary_path)
        annual = db_annual_benefit(fas if fas is not None else 0.0, years_worked, self.rate_at_20)
        initial_monthly = annual / MONTHS_PER_YEAR

        colas = self.cola_path(years_in_retirement, long_run_inflation, retirement_inflation)
        income_path = initial_monthly * np.cumprod(1.0 + colas)

        return DBResult(
            annual_benefit=annual,
            initial_monthly_income=initial_monthly,
            income_path=income_path,
            cola_path=colas,
            average_monthly_income=_mean_or_none(income_path),
        )


@dataclass
class DefinedContributionPlan:
    """
    Defined-contribution investment account.

    Working years: each year's contribution (employee bracket rate plus
    employer rate, on that year's salary) is added to the balance and the
    total earns the age-band blended return.

    Retirement: the monthly withdrawal is fixed once, at retirement, as
    balance * withdrawal_rate / 12. Each year the balance earns the blended
    return and twelve withdrawals are taken. The first year the balance
    cannot cover them it is clamped to zero, the depletion age is recorded,
    and income is zero from then on. An account with no balance at retirement
    pays nothing and is not counted as depleted.

    Attributes:
        withdrawal_rate: Annual share of the retirement balance withdrawn
        employer_schedule: TENURE (first 7 years at 8%) or AGE (<=34 at 8%)
        initial_balance: Account balance at hire
        name: Plan name for display
    """
    withdrawal_rate: float = 0.04
    employer_schedule: EmployerSchedule = EmployerSchedule.TENURE
    initial_balance: float = 0.0
    name: str = "DC"

    def accumulate(
        self,
        salary_path: np.ndarray,
        working: np.ndarray,
        hire_age: int,
    ) -> Tuple[float, float, np.ndarray]:
        """
        Grow the account through the working years.

        Returns:
            Tuple of (balance at retirement, total contributions, end-of-year balances)
        """
        balance = self.initial_balance
        total_contributions = 0.0
        balance_path = np.empty(len(salary_path))

        for year, salary in enumerate(salary_path):
            age = hire_age + year
            rate = (employee_contribution_rate(salary)
                    + employer_contribution_rate(year, age, self.employer_schedule))
            contribution = salary * rate
            total_contributions += contribution

            r = blended_return(allocation_for_age(age), working[year])
            balance = (balance + contribution) * (1.0 + r)
            _require_finite(balance, "DC balance", age)
            balance_path[year] = balance

        return balance, total_contributions, balance_path

    def decumulate(
        self,
        balance: float,
        retirement: np.ndarray,
        retirement_age: int,
    ) -> Tuple[float, np.ndarray, np.ndarray, Optional[int]]:
        """
        Draw the account down through retirement.

        Returns:
            Tuple of (monthly withdrawal, end-of-year balances,
            monthly income paid each year, depletion age or None)
        """
        monthly_withdrawal = balance * self.withdrawal_rate / MONTHS_PER_YEAR
        annual_withdrawal = MONTHS_PER_YEAR * monthly_withdrawal
        n_years = len(retirement)

        account_path = np.zeros(n_years)
        income_path = np.zeros(n_years)
        depletion_age = None

        if monthly_withdrawal <= 0:
            # Never funded: nothing to pay out, so nothing can run out
            return monthly_withdrawal, account_path, income_path, depletion_age

        for year in range(n_years):
            if depletion_age is not None:
                continue
            age = retirement_age + year
            grown = balance * (1.0 + blended_return(allocation_for_age(age), retirement[year]))
            _require_finite(grown, "DC balance", age)

            if grown - annual_withdrawal <= 0:
                # Last payment is whatever the account could still fund
                income_path[year] = max(grown, 0.0) / MONTHS_PER_YEAR
                balance = 0.0
                depletion_age = age
            else:
                income_path[year] = monthly_withdrawal
                balance = grown - annual_withdrawal
            account_path[year] = balance

        return monthly_withdrawal, account_path, income_path, depletion_age

    def __call__(
        self,
        salary_path: np.ndarray,
        working: np.ndarray,
        retirement: np.ndarray,
        hire_age: int,
        retirement_age: int,
    ) -> DCResult:
        balance, contributions, working_path = self.accumulate(salary_path, working, hire_age)
        monthly, account_path, income_path, depletion_age = self.decumulate(
            balance, retirement, retirement_age)

        if depletion_age is not None:
            logger.debug("DC account depleted at age %d (withdrawal rate %.2f%%)",
                         depletion_age, 100 * self.withdrawal_rate)

        return DCResult(
            balance_at_retirement=balance,
            monthly_withdrawal=monthly,
            total_contributions=contributions,
            working_balance_path=working_path,
            account_path=account_path,
            income_path=income_path,
            average_monthly_income=_mean_or_none(income_path),
            depleted=depletion_age is not None,
            depletion_age=depletion_age,
        )
