#!/usr/bin/env python3
"""
Run the DB vs DC bootstrap simulation and report the results.

Loads a historical series (CSV with the six rate columns) or builds a flat
synthetic one, runs the Monte Carlo batch, prints distribution and
probability tables, and optionally writes a PDF of summary figures.

Usage:
    python generate_report.py --history history.csv --periods-per-year 12
    python generate_report.py --trials 1000 --seed 7 --workers 4 -o report.pdf
"""

import sys
import logging
import argparse
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from pensionsim import (
    CareerProfile,
    DBParams,
    DCParams,
    MonteCarloParams,
    SimulationConfig,
    ColaMode,
    EmployerSchedule,
    DB_RATE_AT_20,
    DB_RATE_AT_20_ALT,
    ConfigurationError,
    EconomicObservation,
    EconomicHistory,
    load_config,
    run_monte_carlo,
    run_deterministic_projection,
    aggregate_outcomes,
)
from pensionviz import apply_standard_style, create_summary_figure, plot_depletion_ages

# Flat series used when no history file is given
SYNTHETIC_OBSERVATION = EconomicObservation(
    us_equity_return=0.08,
    intl_equity_return=0.06,
    bond_return=0.03,
    wage_growth_rate=0.02,
    inflation_rate=0.02,
    short_term_rate=0.0,
)


def load_history(path: str = None, periods_per_year: int = 1) -> EconomicHistory:
    """Read a CSV history, or return the flat synthetic series."""
    if path is None:
        return EconomicHistory.constant(SYNTHETIC_OBSERVATION)
    df = pd.read_csv(path)
    return EconomicHistory.from_dataframe(df, periods_per_year=periods_per_year)


def print_report(batch, summary, deterministic) -> None:
    """Print headline tables in the same layout as the PDF summary panel."""
    print("\n" + "=" * 78)
    print("DB vs DC BOOTSTRAP SIMULATION")
    print("=" * 78)
    print(f"Trials requested: {summary.n_requested}   successful: {summary.n_successful}   "
          f"failed: {summary.n_failed}   not run: {summary.n_not_run}")
    if summary.n_successful < summary.n_requested:
        print(f"NOTE: statistics below rest on {summary.n_successful} of {summary.n_requested} trials")
    print(f"Long-run inflation used for fixed COLA: {batch.long_run_inflation:.2%}")

    print("\nDeterministic projection (long-run average every year):")
    print(f"  DB initial monthly income: ${deterministic.db_monthly_income_at_retirement:>12,.2f}")
    print(f"  DC initial monthly income: ${deterministic.dc_monthly_income_at_retirement:>12,.2f}")
    if deterministic.dc_depleted:
        print(f"  DC depleted at age {deterministic.dc_depletion_age}")

    print("\nMonthly income distribution:")
    print("-" * 78)
    with pd.option_context('display.float_format', '{:,.2f}'.format, 'display.width', 120):
        print(summary.summary_frame())

    print("\nProbabilities (95% Wilson intervals):")
    print("-" * 78)
    print(f"{'P(DC account depleted before horizon)':<42} {summary.p_dc_depleted}")
    print(f"{'P(DC > DB, average monthly income)':<42} {summary.p_dc_exceeds_db_average}")
    print(f"{'P(DC > DB, initial monthly income)':<42} {summary.p_dc_exceeds_db_initial}")
    if summary.n_average_not_applicable:
        print(f"Average income not applicable in {summary.n_average_not_applicable} trials")
    print("=" * 78)


def main(
    config: SimulationConfig,
    history_path: str = None,
    periods_per_year: int = 1,
    output_path: str = None,
    verbose: bool = True,
):
    """
    Run the batch and report it.

    Args:
        config: Complete simulation configuration
        history_path: CSV of historical observations (None = synthetic flat series)
        periods_per_year: 12 if the CSV holds monthly rates, 1 if annual
        output_path: PDF path for figures (None = no PDF)
        verbose: If True, print tables and progress
    """
    history = load_history(history_path, periods_per_year)
    if verbose:
        print(f"Loaded {len(history)} annual observations")

    batch = run_monte_carlo(config, history)
    summary = aggregate_outcomes(batch)
    deterministic = run_deterministic_projection(config, history)

    if verbose:
        print_report(batch, summary, deterministic)

    if output_path:
        apply_standard_style()
        with PdfPages(output_path) as pdf:
            fig = create_summary_figure(batch, summary)
            pdf.savefig(fig)
            plt.close(fig)

            fig, ax = plt.subplots(figsize=(10, 6))
            plot_depletion_ages(summary, ax=ax)
            pdf.savefig(fig)
            plt.close(fig)
        if verbose:
            print(f"PDF generated: {output_path}")

    return summary


if __name__ == '__main__':
    parser = argparse.ArgumentParser(
        description='Bootstrap comparison of a defined-benefit and a defined-contribution pension'
    )
    parser.add_argument('--config', default=None,
                       help='JSON configuration file (command-line options below are ignored)')
    parser.add_argument('--history', default=None,
                       help='CSV of historical observations (default: flat synthetic series)')
    parser.add_argument('--periods-per-year', type=int, default=1,
                       help='Rows per year in the history CSV (default: 1, use 12 for monthly)')
    parser.add_argument('-o', '--output', default=None,
                       help='Output PDF file path')
    parser.add_argument('--starting-salary', type=float, default=57_000,
                       help='Salary at hire (default: 57000)')
    parser.add_argument('--hire-age', type=int, default=30,
                       help='Age at hire (default: 30)')
    parser.add_argument('--retirement-age', type=int, default=65,
                       help='Retirement age (default: 65)')
    parser.add_argument('--death-age', type=int, default=85,
                       help='End of the retirement horizon (default: 85)')
    parser.add_argument('--withdrawal-rate', type=float, default=0.04,
                       help='DC annual withdrawal rate (default: 0.04 = 4%%)')
    parser.add_argument('--employer-schedule', choices=[s.value for s in EmployerSchedule],
                       default=EmployerSchedule.TENURE.value,
                       help='Employer DC rate rule: tenure (first 7 years at 8%%) or age (<=34 at 8%%)')
    parser.add_argument('--cola-mode', choices=[m.value for m in ColaMode], default=ColaMode.FIXED.value,
                       help='DB COLA from long-run inflation (fixed) or sampled per year (bootstrap)')
    parser.add_argument('--long-run-inflation', type=float, default=None,
                       help='Inflation for fixed COLA (default: history mean)')
    parser.add_argument('--alt-rate-at-20', action='store_true',
                       help=f'Use {DB_RATE_AT_20_ALT} instead of {DB_RATE_AT_20} as the 20-year DB multiplier')
    parser.add_argument('--trials', type=int, default=200,
                       help='Number of Monte Carlo trials (default: 200)')
    parser.add_argument('--seed', type=int, default=42,
                       help='Random seed (default: 42)')
    parser.add_argument('--workers', type=int, default=1,
                       help='Worker processes (default: 1)')
    parser.add_argument('-q', '--quiet', action='store_true',
                       help='Suppress output messages')
    parser.add_argument('-v', '--verbose', action='store_true',
                       help='Log per-trial details')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        if args.config:
            config = load_config(args.config)
        else:
            config = SimulationConfig(
                career=CareerProfile(
                    starting_salary=args.starting_salary,
                    hire_age=args.hire_age,
                    retirement_age=args.retirement_age,
                    death_age=args.death_age,
                ),
                db=DBParams(
                    rate_at_20=DB_RATE_AT_20_ALT if args.alt_rate_at_20 else DB_RATE_AT_20,
                    cola_mode=ColaMode(args.cola_mode),
                    long_run_inflation=args.long_run_inflation,
                ),
                dc=DCParams(
                    withdrawal_rate=args.withdrawal_rate,
                    employer_schedule=EmployerSchedule(args.employer_schedule),
                ),
                monte_carlo=MonteCarloParams(
                    n_trials=args.trials,
                    random_seed=args.seed,
                    n_workers=args.workers,
                ),
            )
        main(
            config,
            history_path=args.history,
            periods_per_year=args.periods_per_year,
            output_path=args.output,
            verbose=not args.quiet,
        )
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
