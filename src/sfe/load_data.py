import os

import pandas as pd

import sfe.data_cleaning as data_cleaning
from sfe.constants import (
    EIA923_METADATA_ROWS,
    EIA923_SHEET_NAME,
    MAX_MALFORMED_FRACTION,
    MONTHS,
)
from sfe.errors import ParseError
from sfe.filepaths import reference_table_folder
from sfe.logging_util import get_logger

logger = get_logger(__name__)

# maps the normalized EIA-923 Page 1 header (whitespace collapsed, lower case) to the
# standard column names used throughout the pipeline
EIA923_COLUMN_MAP = {
    "plant id": "plant_id_eia",
    "plant state": "plant_state",
    "reported prime mover": "prime_mover_code",
    "reported fuel type code": "energy_source_code",
    "total fuel consumption mmbtu": "fuel_consumed_mmbtu",
    "net generation (megawatthours)": "net_generation_mwh",
    "year": "report_year",
}
for month in MONTHS:
    EIA923_COLUMN_MAP[f"netgen {month}"] = f"net_generation_mwh_{month}"
    EIA923_COLUMN_MAP[f"tot_mmbtu {month}"] = f"fuel_consumed_mmbtu_{month}"

REQUIRED_EIA923_COLUMNS = ["plant_state", "net_generation_mwh", "fuel_consumed_mmbtu"]


def normalize_header(name) -> str:
    """Collapses whitespace (including the line breaks EIA puts inside header cells)
    and lower-cases a column header."""
    return " ".join(str(name).split()).lower()


def read_eia923_generation_fuel(
    filepath: str, skiprows: int = EIA923_METADATA_ROWS
) -> pd.DataFrame:
    """Reads a raw EIA-923 Page 1 Generation and Fuel Data extract.

    The extract may be the CSV export or the original spreadsheet. EIA places a block
    of metadata rows above the header, which are skipped. Only the columns listed in
    `EIA923_COLUMN_MAP` are kept, renamed to their standard names. All values are
    returned as strings so that numeric coercion and malformed-row accounting happen
    in `data_cleaning.clean_eia923`.

    Args:
        filepath (str): path to a .csv or .xlsx extract.
        skiprows (int, optional): number of metadata rows above the header.
            Defaults to EIA923_METADATA_ROWS.

    Raises:
        FileNotFoundError: if `filepath` does not exist.
        ParseError: if the file is a legacy .xls workbook, cannot be parsed, or is
            missing a required column.

    Returns:
        pd.DataFrame: the raw extract with standardized column names.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"EIA-923 extract not found: {filepath}")

    if filepath.lower().endswith(".xls"):
        raise ParseError(
            f"Cannot read {filepath}: legacy .xls workbooks are not supported, save "
            "the extract as .xlsx or .csv"
        )

    logger.info(f"Reading EIA-923 extract {filepath}")
    try:
        if filepath.lower().endswith(".xlsx"):
            raw = pd.read_excel(
                filepath,
                sheet_name=EIA923_SHEET_NAME,
                header=skiprows,
                dtype=str,
            )
        else:
            raw = pd.read_csv(
                filepath,
                skiprows=skiprows,
                dtype=str,
                keep_default_na=False,
            )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise ParseError(f"Could not parse EIA-923 extract {filepath}: {e}") from e

    raw.columns = [normalize_header(col) for col in raw.columns]
    logger.debug(f"Headers found in {filepath}: {list(raw.columns)}")
    raw = raw[[col for col in raw.columns if col in EIA923_COLUMN_MAP]].rename(
        columns=EIA923_COLUMN_MAP
    )
    # EIA repeats a few headers as "Reserved"; keep the first instance of any
    # duplicated standard name
    raw = raw.loc[:, ~raw.columns.duplicated()]

    missing = [col for col in REQUIRED_EIA923_COLUMNS if col not in raw.columns]
    if len(missing) > 0:
        raise ParseError(
            f"Required columns {missing} not found in {filepath}. Check that "
            f"`skiprows` ({skiprows}) matches the number of metadata rows."
        )

    return raw


def load_plant_records(
    filepath: str,
    year: int,
    skiprows: int = EIA923_METADATA_ROWS,
    max_malformed_fraction: float = MAX_MALFORMED_FRACTION,
    fossil_only: bool = False,
    monthly: bool = False,
    include_state_fuel_increments: bool = True,
    drop_zero_generation: bool = False,
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Loads one year of EIA-923 generation and fuel data as plant records.

    Args:
        filepath (str): path to the EIA-923 Page 1 extract for `year`.
        year (int): four-digit reporting year of the extract.
        skiprows (int, optional): number of metadata rows above the header.
        max_malformed_fraction (float, optional): fraction of malformed rows above
            which the load fails.
        fossil_only (bool, optional): keep only fossil fuel rows.
        monthly (bool, optional): return one record per plant row per month.
        include_state_fuel_increments (bool, optional): keep EIA's estimated
            state-fuel level increment rows.
        drop_zero_generation (bool, optional): remove records with no net
            generation.

    Returns:
        tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]: the plant records (see
            `column_checks.COLUMNS["plant_records"]`), the malformed rows that were
            dropped, with a `malformed_reason` column, and the monthly values that
            do not add up to the annual totals.
    """
    raw = read_eia923_generation_fuel(filepath, skiprows=skiprows)
    return data_cleaning.clean_eia923(
        raw,
        year,
        max_malformed_fraction=max_malformed_fraction,
        fossil_only=fossil_only,
        monthly=monthly,
        include_state_fuel_increments=include_state_fuel_increments,
        drop_zero_generation=drop_zero_generation,
        source=filepath,
    )


def load_state_reference() -> pd.DataFrame:
    """Loads the table of state names, USPS codes and FIPS codes.

    Returns:
        pd.DataFrame: one row per state.
    """
    return pd.read_csv(
        reference_table_folder("state_reference.csv"),
        dtype={"state": "str", "state_name": "str", "state_fips": "str"},
    )


def normalize_state_codes(states: pd.Series) -> pd.Series:
    """Maps state identifiers to two-letter USPS codes.

    Accepts two-letter codes or full state names, ignoring case and surrounding
    whitespace. Values that match neither become missing.

    Args:
        states (pd.Series): state codes or names.

    Returns:
        pd.Series: two-letter state codes, aligned with `states`.
    """
    reference = load_state_reference()
    lookup = {code.lower(): code for code in reference["state"]}
    lookup.update(
        {
            normalize_header(name): code
            for name, code in zip(reference["state_name"], reference["state"])
        }
    )

    cleaned = states.astype("string").map(normalize_header, na_action="ignore")
    return cleaned.map(lookup, na_action="ignore").astype("string")


def load_covariates(filepath: str, state_column: str = "state") -> pd.DataFrame:
    """Loads a table of per-state covariates such as population density or a
    lockdown stringency index.

    The state column is normalized to two-letter codes and renamed to
    `plant_state` so it can be joined to the efficiency tables. Every other column
    is coerced to numeric; columns with no numeric values at all (e.g. a state name
    column) are dropped.

    Args:
        filepath (str): path to a CSV file.
        state_column (str, optional): name of the column that identifies the state.
            Defaults to "state".

    Raises:
        ParseError: if the state column is missing, no numeric covariate columns
            remain, or a state appears more than once.

    Returns:
        pd.DataFrame: `plant_state` plus one float column per covariate.
    """
    covariates = pd.read_csv(filepath, dtype=str, keep_default_na=False)
    if state_column not in covariates.columns:
        raise ParseError(
            f"State column '{state_column}' not found in {filepath}. "
            f"Available columns: {list(covariates.columns)}"
        )

    states = normalize_state_codes(covariates[state_column])
    unresolved = covariates.loc[states.isna(), state_column]
    if len(unresolved) > 0:
        logger.warning(
            f"Dropping {len(unresolved)} covariate rows with unrecognized states: "
            f"{sorted(unresolved.unique())}"
        )

    values = covariates.drop(columns=[state_column])
    numeric = pd.DataFrame(index=values.index)
    for column in values.columns:
        coerced = data_cleaning.coerce_numeric(values[column])
        if coerced.notna().any():
            numeric[column] = coerced
        else:
            logger.info(f"Ignoring non-numeric covariate column '{column}'")
    if len(numeric.columns) == 0:
        raise ParseError(f"No numeric covariate columns found in {filepath}")

    numeric.insert(0, "plant_state", states)
    numeric = numeric[numeric["plant_state"].notna()].reset_index(drop=True)

    duplicated = numeric.loc[numeric["plant_state"].duplicated(), "plant_state"]
    if len(duplicated) > 0:
        raise ParseError(
            f"States appear more than once in {filepath}: {sorted(duplicated.unique())}"
        )

    return numeric
