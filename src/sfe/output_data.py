import math
import os

import pandas as pd

import sfe.validation as validation
from sfe.column_checks import check_columns
from sfe.filepaths import outputs_folder, results_folder
from sfe.logging_util import get_logger

logger = get_logger(__name__)


def make_output_folders(path_prefix: str):
    """Creates the outputs and results folders used by a pipeline run."""
    os.makedirs(outputs_folder(path_prefix), exist_ok=True)
    os.makedirs(results_folder(f"{path_prefix}data_quality_metrics"), exist_ok=True)


def output_intermediate_data(
    df: pd.DataFrame, file_name: str, path_prefix: str, year: int, skip_outputs: bool
):
    """Save data frame as ZIP into the outputs directory.

    Args:
        df (pd.DataFrame): data frame that will be saved.
        file_name (str): name of file without file extension.
        path_prefix (str): name of base directory prefixing directory where data will
            be saved.
        year (int): a four-digit year indicating when the data were taken.
        skip_outputs (bool): whether to save data or not.
    """
    check_columns(df, file_name)
    if not skip_outputs:
        logger.info(f"Exporting {file_name}_{year} to data/outputs/{path_prefix}")
        df.to_csv(
            outputs_folder(f"{path_prefix}{file_name}_{year}.csv.zip"),
            index=False,
            compression="zip",
        )


def output_to_results(
    df: pd.DataFrame, file_name: str, path_prefix: str, skip_outputs: bool
):
    """Save data frame as CSV into the results directory.

    The table is rounded and checked for unexpected negative or missing values
    before it is written.

    Args:
        df (pd.DataFrame): data frame that will be saved.
        file_name (str): name of the table, used as the file name.
        path_prefix (str): name of base directory prefixing directory where data will
            be saved.
        skip_outputs (bool): whether to save the data or not.

    Returns:
        pd.DataFrame: the rounded table.
    """
    check_columns(df, file_name)
    logger.info(f"Exporting {file_name} to data/results/{path_prefix}")
    df = round_table(df)

    # Check for negatives after rounding
    validation.test_for_negative_values(df, file_name)
    validation.test_for_missing_values(df, file_name)

    if not skip_outputs:
        df.to_csv(results_folder(f"{path_prefix}{file_name}.csv"), index=False)
    return df


def output_data_quality_metrics(
    df: pd.DataFrame, file_name: str, path_prefix: str, skip_outputs: bool
):
    """Output data quality metrics.

    Args:
        df (pd.DataFrame): data frame that will be saved.
        file_name (str): name of file without file extension.
        path_prefix (str): name of base directory prefixing directory where data will
            be saved.
        skip_outputs (bool): whether to save data or not.
    """
    if not skip_outputs:
        logger.info(
            f"Exporting {file_name} to data/results/{path_prefix}data_quality_metrics"
        )
        df.to_csv(
            results_folder(f"{path_prefix}data_quality_metrics/{file_name}.csv"),
            index=False,
        )


def round_table(table: pd.DataFrame) -> pd.DataFrame:
    """Round each float column. All values in a column have the same rounding.
    Rounding for each column is based on the median non-zero value.

    Args:
        table (pd.DataFrame): table whose float columns will be rounded.

    Raises:
        ValueError: if a column cannot be rounded.

    Returns:
        pd.DataFrame: data frame with rounded values.
    """
    decimals = {}
    for c in table.select_dtypes(include="floating").columns:
        # median of the positive values
        val = table.loc[table[c] > 0, c].median()
        # if val is NaN, then this col has only NaN, negative or 0 values
        if pd.isna(val):
            decimals[c] = 4
        elif val > 1:
            decimals[c] = 2
        else:
            try:
                decimals[c] = abs(math.floor(math.log10(val))) + 2
            except ValueError:
                logger.error(f"Cannot round {c} with median value {val}")
                raise
    return table.round(decimals)


def format_top_states(efficiency_changes: pd.DataFrame, top_n: int = 10) -> str:
    """Formats the highest ranked states as a fixed-width table for the log.

    Args:
        efficiency_changes (pd.DataFrame): ranked output of
            `efficiency.calculate_efficiency_changes`.
        top_n (int, optional): number of states to show. Defaults to 10.

    Returns:
        str: the table, one state per line below a header and a rule.
    """
    if len(efficiency_changes) > 0:
        base_year = efficiency_changes["base_year"].iloc[0]
        comparison_year = efficiency_changes["comparison_year"].iloc[0]
    else:
        base_year, comparison_year = "base", "comparison"
    header = (
        f"{'State':<10} {f'Eff {base_year}':>15} {f'Eff {comparison_year}':>15} "
        f"{'Change':>15} {'Abs Change':>15} {'Pct Change':>15}"
    )
    lines = [header, "-" * len(header)]
    for row in efficiency_changes.head(top_n).itertuples(index=False):
        lines.append(
            f"{row.plant_state:<10} {row.efficiency_base:>15.3f} "
            f"{row.efficiency_comparison:>15.3f} {row.delta_efficiency:>15.3f} "
            f"{row.abs_delta_efficiency:>15.3f} "
            f"{_format_percent(row.percent_delta_efficiency):>15}"
        )
    return "\n".join(lines)


def _format_percent(value) -> str:
    if pd.isna(value):
        return "n/a"
    return f"{value:.1f}%"
