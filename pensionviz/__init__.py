"""
Visualization module for the DB vs DC pension comparison.

This module keeps all matplotlib code apart from the simulation core.

Submodules:
- styles: Color scheme and style constants
- outcome_plots: Income distributions, DC balance fan chart, depletion ages
"""

from .styles import (
    COLORS,
    apply_standard_style,
)

from .outcome_plots import (
    plot_income_distributions,
    plot_dc_balance_fan_chart,
    plot_depletion_ages,
    create_summary_figure,
)

__all__ = [
    'COLORS',
    'apply_standard_style',
    'plot_income_distributions',
    'plot_dc_balance_fan_chart',
    'plot_depletion_ages',
    'create_summary_figure',
]
