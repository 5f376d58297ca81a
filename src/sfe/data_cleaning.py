import numpy as np
import pandas as pd

import sfe.validation as validation
from sfe.column_checks import apply_dtypes
from sfe.constants import (
    EIA_MISSING_MARKER,
    FOSSIL_FUELS,
    MAX_MALFORMED_FRACTION,
    MONTHS,
    STATE_FUEL_INCREMENT_PLANT_ID,
)
from sfe.errors import ParseError
from sfe.logging_util import get_logger

logger = get_logger(__name__)

PLANT_RECORD_COLUMNS = [
    "plant_id_eia",
    "plant_state",
    "report_year",
    "report_month",
    "energy_source_code",
    "prime_mover_code",
    "net_generation_mwh",
    "fuel_consumed_mmbtu",
]

ANNUAL_VALUE_COLUMNS = ["net_generation_mwh", "fuel_consumed_mmbtu"]


def coerce_numeric(values: pd.Series) -> pd.Series:
    """Converts a column of reported values to floats.

    Thousands separators and surrounding whitespace are removed. Blanks and the EIA
    missing-value marker (".") become NaN, as does anything that is not a number.
    """
    text = values.astype(str).str.strip().str.replace(",", "", regex=False)
    text = text.mask(values.isna() | text.isin(["", EIA_MISSING_MARKER]))
    return pd.to_numeric(text, errors="coerce").astype("float64")


def is_blank(values: pd.Series) -> pd.Series:
    """Identifies values that were left empty or marked as not reported."""
    text = values.astype(str).str.strip()
    return values.isna() | text.isin(["", EIA_MISSING_MARKER])


def get_monthly_columns(df: pd.DataFrame) -> list[str]:
    """Returns the monthly generation and fuel columns of an EIA-923 extract.

    Raises:
        ParseError: if any of the monthly columns is missing.
    """
    monthly_columns = [
        f"{column}_{month}" for column in ANNUAL_VALUE_COLUMNS for month in MONTHS
    ]
    missing = [col for col in monthly_columns if col not in df.columns]
    if len(missing) > 0:
        raise ParseError(
            f"Monthly records requested but the extract is missing {len(missing)} "
            f"monthly columns, e.g. {missing[:3]}"
        )
    return monthly_columns


def identify_malformed_rows(
    df: pd.DataFrame, numeric_columns: list[str]
) -> pd.Series:
    """Assigns a reason to every row that cannot be used as a plant record.

    A row is malformed when its state is blank, or when one of `numeric_columns` is
    missing, non-numeric or negative. Only the first problem found is reported.

    Args:
        df (pd.DataFrame): raw extract with string values.
        numeric_columns (list[str]): columns that must hold non-negative numbers.

    Returns:
        pd.Series: the reason for each malformed row, missing for valid rows.
    """
    checks = [(is_blank(df["plant_state"]), "missing_plant_state")]
    for column in numeric_columns:
        blank = is_blank(df[column])
        values = coerce_numeric(df[column])
        checks.append((blank, f"missing_{column}"))
        checks.append((~blank & values.isna(), f"non_numeric_{column}"))
        checks.append((values < 0, f"negative_{column}"))

    reasons = pd.Series(pd.NA, index=df.index, dtype="string")
    for mask, reason in checks:
        reasons = reasons.mask(mask & reasons.isna(), reason)
    return reasons


def clean_eia923(
    raw: pd.DataFrame,
    year: int,
    max_malformed_fraction: float = MAX_MALFORMED_FRACTION,
    fossil_only: bool = False,
    monthly: bool = False,
    include_state_fuel_increments: bool = True,
    drop_zero_generation: bool = False,
    source: str | None = None,
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """This is the coordinating function for turning a raw EIA-923 generation and
    fuel extract into plant records.

    Malformed rows (see `identify_malformed_rows`) are dropped and counted. If they
    make up more than `max_malformed_fraction` of the file, the whole load fails.

    Args:
        raw (pd.DataFrame): extract returned by
            `load_data.read_eia923_generation_fuel`.
        year (int): four-digit reporting year of the extract.
        max_malformed_fraction (float, optional): fraction of malformed rows above
            which a ParseError is raised. Defaults to MAX_MALFORMED_FRACTION.
        fossil_only (bool, optional): keep only rows whose energy source code is a
            fossil fuel. Defaults to False.
        monthly (bool, optional): return one record per row and month instead of
            the annual totals. Defaults to False.
        include_state_fuel_increments (bool, optional): keep EIA's state-fuel level
            increment rows. Defaults to True.
        drop_zero_generation (bool, optional): remove records that report no net
            generation, so their fuel does not count towards the state totals.
            Defaults to False.
        source (str, optional): name of the input used in log messages.

    Raises:
        ParseError: if the extract has no rows, is missing a column required for the
            requested options, or has too many malformed rows.

    Returns:
        tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]: the plant records, the
            dropped malformed rows (as read, plus a `malformed_reason` column) and
            the rows whose monthly values do not add up to the annual total (empty
            unless `monthly` is set).
    """
    source = source if source is not None else f"EIA-923 {year}"
    if len(raw) == 0:
        raise ParseError(f"No data rows found in {source}")

    numeric_columns = list(ANNUAL_VALUE_COLUMNS)
    if monthly:
        numeric_columns += get_monthly_columns(raw)
    if fossil_only and "energy_source_code" not in raw.columns:
        raise ParseError(
            f"Filtering to fossil fuels requires a fuel type column, not found in {source}"
        )

    reasons = identify_malformed_rows(raw, numeric_columns)
    is_malformed = reasons.notna()
    malformed = raw[is_malformed].assign(malformed_reason=reasons[is_malformed])
    malformed_fraction = is_malformed.sum() / len(raw)
    if malformed_fraction > max_malformed_fraction:
        raise ParseError(
            f"{is_malformed.sum()} of {len(raw)} rows in {source} are malformed "
            f"({malformed_fraction:.1%}), above the allowed "
            f"{max_malformed_fraction:.1%}:\n"
            f"{reasons.value_counts().to_string()}"
        )
    if is_malformed.any():
        logger.warning(
            f"Skipping {is_malformed.sum()} malformed rows of {len(raw)} in {source}"
        )
        logger.warning("\n" + reasons.value_counts().to_string())
    logger.info(f"Parsed {(~is_malformed).sum()} valid rows from {source}")

    df = raw[~is_malformed].copy()
    for column in numeric_columns:
        df[column] = coerce_numeric(df[column])
    df["plant_state"] = df["plant_state"].astype("string").str.strip().str.upper()
    for column in ["energy_source_code", "prime_mover_code"]:
        if column in df.columns:
            df[column] = df[column].astype("string").str.strip().str.upper()
            df[column] = df[column].mask((df[column] == "").fillna(False))
        else:
            df[column] = pd.NA
    if "plant_id_eia" in df.columns:
        df["plant_id_eia"] = coerce_numeric(df["plant_id_eia"])
    else:
        df["plant_id_eia"] = np.nan

    df = check_report_year(df, year, source)

    if not include_state_fuel_increments:
        increments = df["plant_id_eia"] == STATE_FUEL_INCREMENT_PLANT_ID
        logger.info(
            f"Removing {increments.sum()} state-fuel level increment rows from {source}"
        )
        df = df[~increments]

    if fossil_only:
        df = filter_fossil_fuels(df)

    if monthly:
        monthly_mismatches = validation.check_monthly_sums_match_annual_totals(
            df, year
        )
        df = reshape_to_monthly(df)
    else:
        monthly_mismatches = pd.DataFrame(columns=validation.MONTHLY_MISMATCH_COLUMNS)
        df["report_month"] = pd.NA

    if drop_zero_generation:
        df = drop_zero_generation_records(df, source)

    plant_records = apply_dtypes(df[PLANT_RECORD_COLUMNS].reset_index(drop=True))
    return plant_records, malformed, monthly_mismatches


def check_report_year(df: pd.DataFrame, year: int, source: str) -> pd.DataFrame:
    """Logs rows whose reported year disagrees with `year`, then sets `report_year`
    to `year` for every row."""
    if "report_year" in df.columns:
        reported = coerce_numeric(df["report_year"])
        mismatched = reported.notna() & (reported != year)
        if mismatched.any():
            logger.warning(
                f"{mismatched.sum()} rows in {source} report a year other than {year}: "
                f"{sorted(reported[mismatched].astype(int).unique())}"
            )
    df["report_year"] = year
    return df


def drop_zero_generation_records(df: pd.DataFrame, source: str) -> pd.DataFrame:
    """Removes records with no net generation, along with the fuel they report."""
    is_zero = df["net_generation_mwh"] == 0
    logger.info(
        f"Removing {is_zero.sum()} records with zero net generation from {source}, "
        f"which reported {df.loc[is_zero, 'fuel_consumed_mmbtu'].sum():,.0f} MMBtu"
    )
    return df[~is_zero]


def filter_fossil_fuels(df: pd.DataFrame) -> pd.DataFrame:
    """Keeps only rows whose energy source code is a fossil fuel."""
    is_fossil = df["energy_source_code"].isin(FOSSIL_FUELS).fillna(False)
    logger.info(
        f"Keeping {is_fossil.sum()} fossil fuel rows, removing {(~is_fossil).sum()} "
        "rows for other energy sources"
    )
    return df[is_fossil]


def reshape_to_monthly(df: pd.DataFrame) -> pd.DataFrame:
    """Reshapes the wide monthly columns of the extract into one row per month.

    Rows keep their original order, with months in calendar order within each row.
    """
    id_columns = [
        "plant_id_eia",
        "plant_state",
        "report_year",
        "energy_source_code",
        "prime_mover_code",
    ]
    monthly_frames = []
    for month_number, month in enumerate(MONTHS, start=1):
        monthly_frames.append(
            df[id_columns].assign(
                report_month=month_number,
                net_generation_mwh=df[f"net_generation_mwh_{month}"],
                fuel_consumed_mmbtu=df[f"fuel_consumed_mmbtu_{month}"],
            )
        )
    return pd.concat(monthly_frames).sort_index(kind="stable").reset_index(drop=True)


def aggregate_to_state_year(plant_records: pd.DataFrame) -> pd.DataFrame:
    """Sums generation and fuel consumption for each state and year.

    Every record counts towards its state's totals; repeated plant rows (such as
    re-reported months) are summed rather than deduplicated. Records with zero net
    generation still add their fuel consumption to the totals unless they were
    removed with `clean_eia923(..., drop_zero_generation=True)`.

    Args:
        plant_records (pd.DataFrame): plant records for one or more years.

    Returns:
        pd.DataFrame: one row per state and year present in `plant_records`.
    """
    state_year_totals = (
        plant_records.groupby(["plant_state", "report_year"], as_index=False)
        .agg(
            net_generation_mwh=("net_generation_mwh", "sum"),
            fuel_consumed_mmbtu=("fuel_consumed_mmbtu", "sum"),
            num_records=("net_generation_mwh", "size"),
            num_plants=("plant_id_eia", "nunique"),
        )
        .sort_values(by=["report_year", "plant_state"])
        .reset_index(drop=True)
    )
    return apply_dtypes(state_year_totals)
