"""
Centralized style definitions for pension comparison figures.

This module provides consistent colors and font sizes across all plots.
"""

import matplotlib.pyplot as plt

# Whitegrid base shared by every pension figure
plt.style.use('seaborn-v0_8-whitegrid')

# Plan and outcome colors (DB blue, DC orange)
COLORS = {
    # Plans
    'db': '#1A759F',         # Deep blue - defined benefit
    'dc': '#E07A5F',         # Burnt orange - defined contribution
    'dc_dark': '#BC6C25',    # Rust - DC median line

    # Outcomes
    'depleted': '#E9C46A',   # Amber
    'reference': '#95a5a6',  # Gray guide lines
}


def apply_standard_style():
    """Font sizes used by the report figures."""
    plt.rcParams.update({
        'font.size': 12,
        'axes.titlesize': 14,
        'axes.labelsize': 12,
        'legend.fontsize': 10,
        'figure.titlesize': 16,
    })
