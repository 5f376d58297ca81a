"""
Entry point for comparing the fuel efficiency of each state between two years.

Run as `python -m sfe.data_pipeline` after installing the package.

Optional arguments are --base_year (default 2019) and --comparison_year (default
2020), with --base_file and --comparison_file pointing to the EIA-923 Page 1
extracts of those years. Pass --covariates to correlate the change in efficiency
with per-state covariates.
Optional arguments for development are --skip_outputs
"""

import argparse
import os

import pandas as pd

import sfe.correlation as correlation
import sfe.data_cleaning as data_cleaning
import sfe.efficiency as efficiency
import sfe.load_data as load_data
import sfe.output_data as output_data
import sfe.validation as validation
from sfe.constants import (
    CORRELATION_METHODS,
    EIA923_METADATA_ROWS,
    MAX_MALFORMED_FRACTION,
    default_base_year,
    default_comparison_year,
)
from sfe.efficiency import RANKING_COLUMNS
from sfe.filepaths import downloads_folder, results_folder
from sfe.logging_util import configure_root_logger, get_logger


def get_args(args: list[str] | None = None) -> argparse.Namespace:
    """Specify arguments here.

    Returns dictionary of {arg_name: arg_value}
    """
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--base_year",
        help="Earlier year of the comparison",
        default=default_base_year,
        type=int,
    )
    parser.add_argument(
        "--comparison_year",
        help="Later year of the comparison",
        default=default_comparison_year,
        type=int,
    )
    parser.add_argument(
        "--base_file",
        help="EIA-923 Page 1 extract (csv or xlsx) for the base year. Defaults to "
        "eia923/eia923_<base_year>.xlsx in the downloads folder.",
        default=None,
    )
    parser.add_argument(
        "--comparison_file",
        help="EIA-923 Page 1 extract (csv or xlsx) for the comparison year. Defaults "
        "to eia923/eia923_<comparison_year>.xlsx in the downloads folder.",
        default=None,
    )
    parser.add_argument(
        "--covariates",
        help="CSV of per-state covariates to correlate with the efficiency change",
        default=None,
    )
    parser.add_argument(
        "--state_column",
        help="Name of the state column in the covariates file",
        default="state",
    )
    parser.add_argument(
        "--skiprows",
        help="Number of metadata rows above the header of the EIA-923 extracts",
        default=EIA923_METADATA_ROWS,
        type=int,
    )
    parser.add_argument(
        "--max_malformed_fraction",
        help="Largest fraction of malformed rows accepted in an extract",
        default=MAX_MALFORMED_FRACTION,
        type=float,
    )
    parser.add_argument(
        "--fossil_only",
        help="Only count fossil fuel generation and consumption?",
        default=False,
        action=argparse.BooleanOptionalAction,
    )
    parser.add_argument(
        "--monthly",
        help="Build plant records from the monthly columns of the extracts?",
        default=False,
        action=argparse.BooleanOptionalAction,
    )
    parser.add_argument(
        "--exclude_state_fuel_increments",
        help="Remove EIA's estimated state-fuel level increment rows?",
        default=False,
        action=argparse.BooleanOptionalAction,
    )
    parser.add_argument(
        "--drop_zero_generation_rows",
        help="Remove plant records with zero net generation before summing by state?",
        default=False,
        action=argparse.BooleanOptionalAction,
    )
    parser.add_argument(
        "--rank_by",
        help="Rank states by the percent or the absolute change in efficiency",
        default="percent",
        choices=list(RANKING_COLUMNS.keys()),
    )
    parser.add_argument(
        "--method",
        help="Correlation method",
        default="pearson",
        choices=CORRELATION_METHODS,
    )
    parser.add_argument(
        "--top_n",
        help="Number of states shown in the logged ranking",
        default=10,
        type=int,
    )
    parser.add_argument(
        "--skip_outputs",
        help="Skip outputting data to csv files for quicker testing.",
        default=False,
        action=argparse.BooleanOptionalAction,
    )

    return parser.parse_args(args)


def print_args(args: argparse.Namespace, logger):
    """Print out the command line arguments."""
    argstring = "\n".join([f"  * {k} = {v}" for k, v in vars(args).items()])
    logger.info(f"\n\nRunning with the following options:\n{argstring}\n")


def main(args: list[str] | None = None) -> dict:
    """Runs the state fuel efficiency pipeline.

    Returns:
        dict: the result tables, keyed by table name.
    """
    args = get_args(args)
    base_year = args.base_year
    comparison_year = args.comparison_year

    validation.validate_year_pair(base_year, comparison_year)

    # 0. Set up directory structure
    path_prefix = f"{base_year}_{comparison_year}/"
    output_data.make_output_folders(path_prefix)

    # configure the logger
    # Log the print statements to a file for debugging.
    configure_root_logger(
        logfile=results_folder(f"{path_prefix}data_quality_metrics/data_pipeline.log")
    )
    logger = get_logger("data_pipeline")
    print_args(args, logger)

    logger.info(
        f"Running data pipeline comparing {base_year} with {comparison_year}"
    )

    # 1. Load and clean plant records
    ####################################################################################
    logger.info("1. Loading EIA-923 generation and fuel data")
    input_files = {
        base_year: args.base_file,
        comparison_year: args.comparison_file,
    }
    plant_records = {}
    for year, filepath in input_files.items():
        if filepath is None:
            filepath = downloads_folder(f"eia923/eia923_{year}.xlsx")
        logger.info(f"Loading {year} data from {filepath}")
        plant_records[year], malformed, monthly_mismatches = (
            load_data.load_plant_records(
                filepath,
                year,
                skiprows=args.skiprows,
                max_malformed_fraction=args.max_malformed_fraction,
                fossil_only=args.fossil_only,
                monthly=args.monthly,
                include_state_fuel_increments=not args.exclude_state_fuel_increments,
                drop_zero_generation=args.drop_zero_generation_rows,
            )
        )
        output_data.output_intermediate_data(
            plant_records[year],
            "plant_records",
            path_prefix,
            year,
            args.skip_outputs,
        )
        output_data.output_data_quality_metrics(
            malformed,
            f"malformed_rows_{year}",
            path_prefix,
            args.skip_outputs,
        )
        if args.monthly:
            output_data.output_data_quality_metrics(
                monthly_mismatches,
                f"monthly_mismatches_{year}",
                path_prefix,
                args.skip_outputs,
            )

    # 2. Aggregate to state totals
    ####################################################################################
    logger.info("2. Aggregating generation and fuel consumption by state")
    state_year_totals = {
        year: data_cleaning.aggregate_to_state_year(records)
        for year, records in plant_records.items()
    }

    # 3. Calculate efficiency
    ####################################################################################
    logger.info("3. Calculating fuel efficiency by state")
    state_efficiency = {
        year: efficiency.calculate_state_efficiency(totals)
        for year, totals in state_year_totals.items()
    }

    # 4. Compare years
    ####################################################################################
    logger.info("4. Calculating changes in efficiency")
    efficiency_changes, excluded_states = efficiency.calculate_efficiency_changes(
        state_efficiency[base_year],
        state_efficiency[comparison_year],
        base_year=base_year,
        comparison_year=comparison_year,
        sort_by=args.rank_by,
    )
    logger.info(
        f"\n\nTop {args.top_n} states by change in efficiency:\n\n"
        + output_data.format_top_states(efficiency_changes, top_n=args.top_n)
        + "\n"
    )

    results = {
        "state_year_totals": pd.concat(
            list(state_year_totals.values()), ignore_index=True
        ),
        "state_efficiency": pd.concat(
            list(state_efficiency.values()), ignore_index=True
        ),
        "efficiency_changes": efficiency_changes,
        "excluded_states": excluded_states,
    }

    # 5. Correlate with covariates
    ####################################################################################
    if args.covariates is not None:
        logger.info("5. Correlating changes in efficiency with covariates")
        covariates = load_data.load_covariates(
            args.covariates, state_column=args.state_column
        )
        results["covariate_correlations"] = correlation.correlate_with_covariates(
            efficiency_changes,
            covariates,
            method=args.method,
        )
    else:
        logger.info("5. No covariates given, skipping correlation")

    # 6. Output results
    ####################################################################################
    logger.info("6. Exporting results")
    for table_name, table in results.items():
        output_data.output_to_results(
            table, table_name, path_prefix, args.skip_outputs
        )

    logger.info(f"Results written to {os.path.abspath(results_folder(path_prefix))}")
    return results


if __name__ == "__main__":
    main()
