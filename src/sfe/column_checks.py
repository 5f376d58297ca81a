"""
Check columns for standard tables produced by the data pipeline.

Since table and column names are hardcoded across several modules, calling these
checks when a table is written (output_data.py) ensures that changes to table or
column names are not made accidentally.

To make an intentional change in a table or column name, search the project for all
uses of that column/table, update all of them to the new name, and then change the
name here.

To add a column, add the name here.
"""

import pandas as pd

from sfe.logging_util import get_logger

logger = get_logger(__name__)

COLUMNS = {
    "plant_records": {
        "plant_id_eia",
        "plant_state",
        "report_year",
        "report_month",
        "energy_source_code",
        "prime_mover_code",
        "net_generation_mwh",
        "fuel_consumed_mmbtu",
    },
    "state_year_totals": {
        "plant_state",
        "report_year",
        "net_generation_mwh",
        "fuel_consumed_mmbtu",
        "num_records",
        "num_plants",
    },
    "state_efficiency": {
        "plant_state",
        "report_year",
        "net_generation_mwh",
        "fuel_consumed_mmbtu",
        "fuel_mmbtu_per_mwh",
        "efficiency_defined",
    },
    "efficiency_changes": {
        "rank",
        "plant_state",
        "base_year",
        "comparison_year",
        "efficiency_base",
        "efficiency_comparison",
        "delta_efficiency",
        "abs_delta_efficiency",
        "percent_delta_efficiency",
    },
    "excluded_states": {
        "plant_state",
        "reason",
    },
    "covariate_correlations": {
        "covariate",
        "method",
        "correlation_coefficient",
        "sample_size",
        "slope",
        "intercept",
        "r_squared",
        "p_value",
        "error",
    },
}

# columns that are allowed to contain missing values in each table
NULLABLE_COLUMNS = {
    "plant_records": {
        "plant_id_eia",
        "report_month",
        "energy_source_code",
        "prime_mover_code",
    },
    "state_efficiency": {"fuel_mmbtu_per_mwh"},
    "efficiency_changes": {"percent_delta_efficiency"},
    "covariate_correlations": {
        "correlation_coefficient",
        "slope",
        "intercept",
        "r_squared",
        "p_value",
        "error",
    },
}


def check_columns(df: pd.DataFrame, table_name: str):
    """Given a data frame and the name of the table it represents, check that its
    columns are as expected.

    Args:
        df (pd.DataFrame): the table to check.
        table_name (str): name of the table, optionally suffixed with a year
            (e.g. "plant_records_2019").

    Raises:
        ValueError: if the table name is unknown or expected columns are missing.
    """
    name = table_name
    # If table is appended by year, remove it because column names are standard
    # across years
    maybe_year = name[-4:]
    if maybe_year.isnumeric():
        name = name[:-4].rstrip("_")

    if name not in COLUMNS:
        raise ValueError(
            f"Could not find table {name} in expected table names {list(COLUMNS.keys())}"
        )
    expected_cols = COLUMNS[name]
    cols = set(df.columns)

    # Check for extra columns. Warning not exception
    extras = cols - expected_cols
    if len(extras) > 0:
        logger.warning(
            f"Columns {extras} in {table_name} are not guaranteed by column_checks.py"
        )

    # Raise exception for missing columns
    missing = expected_cols - cols
    if len(missing) > 0:
        raise ValueError(f"Columns {missing} missing from {table_name}")


def get_dtypes():
    dtypes_to_use = {
        "plant_id_eia": "Int32",
        "plant_state": "string",
        "report_year": "Int16",
        "report_month": "Int8",
        "energy_source_code": "string",
        "prime_mover_code": "string",
        "net_generation_mwh": "float64",
        "fuel_consumed_mmbtu": "float64",
        "num_records": "Int64",
        "num_plants": "Int64",
        "fuel_mmbtu_per_mwh": "float64",
        "efficiency_defined": "bool",
        "rank": "Int32",
        "base_year": "Int16",
        "comparison_year": "Int16",
        "efficiency_base": "float64",
        "efficiency_comparison": "float64",
        "delta_efficiency": "float64",
        "abs_delta_efficiency": "float64",
        "percent_delta_efficiency": "float64",
        "reason": "string",
        "covariate": "string",
        "method": "string",
        "correlation_coefficient": "float64",
        "sample_size": "Int32",
        "slope": "float64",
        "intercept": "float64",
        "r_squared": "float64",
        "p_value": "float64",
        "error": "string",
    }

    return dtypes_to_use


def apply_dtypes(df):
    dtypes = get_dtypes()
    cols_missing_dtypes = [col for col in df.columns if col not in dtypes]
    if len(cols_missing_dtypes) > 0:
        logger.warning(
            "The following columns do not have dtypes assigned in "
            f"`column_checks.get_dtypes()`: {cols_missing_dtypes}"
        )
    return df.astype({col: dtypes[col] for col in df.columns if col in dtypes})
