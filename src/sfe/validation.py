import numpy as np
import pandas as pd

from sfe.column_checks import NULLABLE_COLUMNS
from sfe.constants import earliest_data_year, latest_validated_year, MONTHS
from sfe.logging_util import get_logger

logger = get_logger(__name__)

MONTHLY_MISMATCH_COLUMNS = [
    "plant_id_eia",
    "plant_state",
    "energy_source_code",
    "column",
    "annual_total",
    "monthly_sum",
    "difference",
]


# DATA PIPELINE VALIDATION FUNCTIONS
########################################################################################


def validate_year(year):
    """Raises an error if the year specified is not known to work with the pipeline.

    Args:
        year (int): a four-digit year.

    Raises:
        UserWarning: if `year` precedes the EIA-923 Page 1 layout.
    """
    start = earliest_data_year
    end = latest_validated_year
    year_warning = f"""
    #########################################################################
    Invalid year. EIA-923 generation and fuel data is only published in the
    layout read by this pipeline from {start} onwards. Earlier years were
    reported on forms 906/920 with different column names.
    #########################################################################
    """
    if year < start:
        raise UserWarning(year_warning)
    if year > end:
        logger.warning(
            f"The EIA-923 layout for {year} has not been validated (validated years: "
            f"{start}-{end}). Check that the extract headers match EIA923_COLUMN_MAP."
        )


def validate_year_pair(base_year, comparison_year):
    """Checks that both years are supported and that the base year comes first.

    Raises:
        ValueError: if `comparison_year` is not after `base_year`.
    """
    validate_year(base_year)
    validate_year(comparison_year)
    if comparison_year <= base_year:
        raise ValueError(
            f"The comparison year ({comparison_year}) must be after the base year "
            f"({base_year})."
        )


def check_monthly_sums_match_annual_totals(
    df: pd.DataFrame, year, atol: float = len(MONTHS)
) -> pd.DataFrame:
    """Checks that the twelve monthly values of each row add up to its annual total.

    EIA publishes both the monthly values and the annual totals of each plant row.
    Values are rounded to whole units, so each month can contribute up to half a
    unit of rounding error; by default a difference of up to one unit per month is
    accepted.

    Args:
        df (pd.DataFrame): extract with numeric annual and monthly columns.
        year (int): four-digit year of the extract, used in log messages.
        atol (float, optional): largest acceptable absolute difference.

    Returns:
        pd.DataFrame: one row per mismatched row and value column.
    """
    logger.info(f"Checking that monthly values sum to annual totals for {year}...  ")
    mismatches = []
    for column in ["net_generation_mwh", "fuel_consumed_mmbtu"]:
        monthly_sum = df[[f"{column}_{month}" for month in MONTHS]].sum(axis=1)
        is_close = np.isclose(monthly_sum, df[column], rtol=1e-5, atol=atol)
        if not is_close.all():
            mismatched = df.loc[
                ~is_close, ["plant_id_eia", "plant_state", "energy_source_code"]
            ].assign(
                column=column,
                annual_total=df.loc[~is_close, column],
                monthly_sum=monthly_sum[~is_close],
            )
            mismatched["difference"] = (
                mismatched["monthly_sum"] - mismatched["annual_total"]
            )
            mismatches.append(mismatched[MONTHLY_MISMATCH_COLUMNS])

    if len(mismatches) > 0:
        mismatches = pd.concat(mismatches, ignore_index=True)
        logger.warning(
            f"There are {len(mismatches)} values in {year} where the monthly sum does "
            "not match the annual total"
        )
        logger.warning("\n" + limit_error_output_df(mismatches).to_string())
    else:
        mismatches = pd.DataFrame(columns=MONTHLY_MISMATCH_COLUMNS)
        logger.info("OK")
    return mismatches


def test_for_negative_values(df, table_name: str = ""):
    """Checks that there are no unexpected negative values in the data."""
    logger.info(f"Checking that values in {table_name} are not negative...  ")
    # changes between years and fitted trends are signed
    columns_that_can_be_negative = [
        "delta_efficiency",
        "percent_delta_efficiency",
        "correlation_coefficient",
        "slope",
        "intercept",
    ]
    negative_warnings = 0
    is_negative = pd.Series(False, index=df.index)
    for column in df.columns:
        if column in columns_that_can_be_negative:
            continue
        # bools are numeric to pandas but cannot be negative
        if pd.api.types.is_bool_dtype(df[column].dtype):
            continue
        if pd.api.types.is_numeric_dtype(df[column].dtype):
            column_is_negative = (df[column] < 0).fillna(False).astype(bool)
            negative_test = df[column_is_negative]
            if not negative_test.empty:
                logger.warning(
                    f"There are {len(negative_test)} records where {column} is negative."
                )
                logger.warning(
                    "\n" + limit_error_output_df(negative_test).to_string()
                )
                negative_warnings += 1
                is_negative = is_negative | column_is_negative
    if negative_warnings > 0:
        logger.error("The above negative values are errors and must be fixed!")
    else:
        logger.info("OK")
    return df[is_negative]


def test_for_missing_values(df, table_name: str = ""):
    """Checks that there are no unexpected missing values in the output data.

    Columns listed for `table_name` in `column_checks.NULLABLE_COLUMNS` may hold
    missing values by design and are skipped.
    """
    logger.info(f"Checking that no values in {table_name} are missing...  ")
    skip_cols = NULLABLE_COLUMNS.get(table_name, set())
    missing_warnings = 0
    is_missing = pd.Series(False, index=df.index)
    for column in df.columns:
        if column in skip_cols:
            continue
        missing_test = df[df[column].isna()]
        if not missing_test.empty:
            logger.warning(
                f"There are {len(missing_test)} records where {column} is missing."
            )
            missing_warnings += 1
            is_missing = is_missing | df[column].isna()
    if missing_warnings > 0:
        logger.error("The above missing values are errors and must be fixed")
    else:
        logger.info("OK")
    return df[is_missing]


def limit_error_output_df(df: pd.DataFrame) -> pd.DataFrame:
    """Limits the size of a dataframe to 20 rows, keeping the first 10 and last 10
    entries.

    This is to prevent large dataframes from being output as a logger message.

    Args:
        df (pd.DataFrame): The error dataframe to limit

    Returns:
        pd.DataFrame: a shortened df
    """
    if len(df) > 20:
        return pd.concat([df.head(10), df.tail(10)], axis=0)
    else:
        return df
