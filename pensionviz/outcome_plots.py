"""
Plots of Monte Carlo pension outcomes.

This module provides plotting functions for batch results: income
distributions for both plans, DC account fan charts, depletion ages,
and a one-page summary figure.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import Tuple, TYPE_CHECKING

from .styles import COLORS

if TYPE_CHECKING:
    from pensionsim import BatchResult, OutcomeSummary


def plot_income_distributions(
    summary: 'OutcomeSummary',
    basis: str = 'average',
    ax: plt.Axes = None,
    bins: int = 30,
) -> plt.Axes:
    """
    Overlaid histograms of DB and DC monthly income.

    Args:
        summary: Aggregated batch outcomes
        basis: 'average' (mean over retirement) or 'initial' (first month)
        ax: Axes to draw on (new figure if None)
        bins: Number of histogram bins

    Returns:
        The axes drawn on
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 6))

    db = getattr(summary, f'db_{basis}_income')
    dc = getattr(summary, f'dc_{basis}_income')
    if len(db) == 0 and len(dc) == 0:
        ax.text(0.5, 0.5, 'No applicable trials', ha='center', va='center', transform=ax.transAxes)
        return ax

    combined = np.concatenate([db, dc])
    edges = np.linspace(combined.min(), combined.max(), bins + 1) if np.ptp(combined) > 0 else bins

    ax.hist(db, bins=edges, alpha=0.6, color=COLORS['db'], edgecolor='white', label='DB')
    ax.hist(dc, bins=edges, alpha=0.6, color=COLORS['dc'], edgecolor='white', label='DC')
    if len(db):
        ax.axvline(np.median(db), color=COLORS['db'], linestyle='--', linewidth=2,
                   label=f'DB median: ${np.median(db):,.0f}')
    if len(dc):
        ax.axvline(np.median(dc), color=COLORS['dc_dark'], linestyle='--', linewidth=2,
                   label=f'DC median: ${np.median(dc):,.0f}')

    label = 'Average Monthly Income in Retirement' if basis == 'average' else 'Initial Monthly Income'
    estimate = summary.p_dc_exceeds_db_average if basis == 'average' else summary.p_dc_exceeds_db_initial
    ax.set_xlabel(f'{label} ($)')
    ax.set_ylabel('Trials')
    ax.set_title(f'{label}: P(DC > DB) = {estimate}')
    ax.legend(loc='upper right')
    return ax


def plot_dc_balance_fan_chart(
    batch: 'BatchResult',
    ax: plt.Axes = None,
    n_sample_paths: int = 50,
) -> plt.Axes:
    """Percentile bands of the DC account balance through retirement."""
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 6))

    paths = batch.account_paths()
    ages = batch.retirement_ages
    if paths.shape[0] == 0 or paths.shape[1] == 0:
        ax.text(0.5, 0.5, 'No retirement paths', ha='center', va='center', transform=ax.transAxes)
        return ax

    for i in range(min(n_sample_paths, paths.shape[0])):
        ax.plot(ages, paths[i, :], color=COLORS['dc'], alpha=0.1, linewidth=0.5)

    pct = np.percentile(paths, [10, 25, 50, 75, 90], axis=0)
    ax.fill_between(ages, pct[0], pct[4], alpha=0.2, color=COLORS['dc'], label='10-90th pctl')
    ax.fill_between(ages, pct[1], pct[3], alpha=0.3, color=COLORS['dc'], label='25-75th pctl')
    ax.plot(ages, pct[2], color=COLORS['dc_dark'], linewidth=2, label='Median')
    ax.axhline(y=0, color=COLORS['reference'], linestyle='-', alpha=0.5)

    ax.set_xlabel('Age')
    ax.set_ylabel('Account Balance ($)')
    ax.set_title(f'DC Balance in Retirement (n={paths.shape[0]})')
    ax.legend(loc='upper right')
    return ax


def plot_depletion_ages(summary: 'OutcomeSummary', ax: plt.Axes = None) -> plt.Axes:
    """Histogram of the age at which DC accounts ran out."""
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 6))

    ages = summary.dc_depletion_ages
    if len(ages) == 0:
        ax.text(0.5, 0.5, 'No DC account depleted', ha='center', va='center', transform=ax.transAxes)
    else:
        edges = np.arange(ages.min(), ages.max() + 2) - 0.5
        ax.hist(ages, bins=edges, color=COLORS['depleted'], edgecolor='white')
    ax.set_xlabel('Depletion Age')
    ax.set_ylabel('Trials')
    ax.set_title(f'DC Depletion: {summary.p_dc_depleted}')
    return ax


def create_summary_figure(
    batch: 'BatchResult',
    summary: 'OutcomeSummary',
    figsize: Tuple[int, int] = (16, 12),
) -> plt.Figure:
    """
    Four-panel overview of a batch.

    Panels: average income distribution, initial income distribution,
    DC balance fan chart, and a text block with trial counts and headline
    probabilities.
    """
    fig, axes = plt.subplots(2, 2, figsize=figsize)

    plot_income_distributions(summary, basis='average', ax=axes[0, 0])
    plot_income_distributions(summary, basis='initial', ax=axes[0, 1])
    plot_dc_balance_fan_chart(batch, ax=axes[1, 0])

    ax = axes[1, 1]
    ax.axis('off')
    career = batch.config.career
    summary_text = f"""
DB vs DC Bootstrap Simulation
=============================
Career: hired at {career.hire_age}, retire at {career.retirement_age}, horizon to {career.death_age}
Starting salary: ${career.starting_salary:,.0f}
DC withdrawal rate: {batch.config.dc.withdrawal_rate:.2%}

Trials requested:  {summary.n_requested}
Trials successful: {summary.n_successful}
Trials failed:     {summary.n_failed}
Trials not run:    {summary.n_not_run}

P(DC depleted):               {summary.p_dc_depleted}
P(DC > DB, average monthly):  {summary.p_dc_exceeds_db_average}
P(DC > DB, initial monthly):  {summary.p_dc_exceeds_db_initial}
(intervals are 95% Wilson)
"""
    ax.text(0.02, 0.98, summary_text, transform=ax.transAxes, fontsize=11,
            verticalalignment='top', fontfamily='monospace')

    fig.tight_layout()
    return fig
