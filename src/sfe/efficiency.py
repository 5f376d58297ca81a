"""Fuel efficiency of electricity generation by state and its change between years.

The efficiency ratio is the fuel consumed (MMBtu) per MWh of net generation, so a
lower value means more efficient generation. A state with no net generation has no
defined ratio; it is carried as a missing value with `efficiency_defined` set to
False, never as zero or infinity.
"""

import warnings

import numpy as np
import pandas as pd

from sfe.column_checks import apply_dtypes
from sfe.errors import MissingStateError, UndefinedMetricError
from sfe.logging_util import get_logger

logger = get_logger(__name__)

STATE_EFFICIENCY_COLUMNS = [
    "plant_state",
    "report_year",
    "net_generation_mwh",
    "fuel_consumed_mmbtu",
    "fuel_mmbtu_per_mwh",
    "efficiency_defined",
]

EFFICIENCY_CHANGE_COLUMNS = [
    "rank",
    "plant_state",
    "base_year",
    "comparison_year",
    "efficiency_base",
    "efficiency_comparison",
    "delta_efficiency",
    "abs_delta_efficiency",
    "percent_delta_efficiency",
]

RANKING_COLUMNS = {
    "percent": "percent_delta_efficiency",
    "absolute": "delta_efficiency",
}


def efficiency_ratio(fuel_consumed, net_generation):
    """Returns fuel consumed per unit of net generation, or None if there was no
    generation."""
    if pd.isna(net_generation) or net_generation == 0:
        return None
    return fuel_consumed / net_generation


def calculate_state_efficiency(state_year_totals: pd.DataFrame) -> pd.DataFrame:
    """Calculates the efficiency ratio of each state and year.

    Args:
        state_year_totals (pd.DataFrame): output of
            `data_cleaning.aggregate_to_state_year`.

    Returns:
        pd.DataFrame: one row per state and year with `fuel_mmbtu_per_mwh` and
            `efficiency_defined`.
    """
    state_efficiency = state_year_totals[
        ["plant_state", "report_year", "net_generation_mwh", "fuel_consumed_mmbtu"]
    ].copy()
    state_efficiency["fuel_mmbtu_per_mwh"] = [
        efficiency_ratio(fuel, generation)
        for fuel, generation in zip(
            state_efficiency["fuel_consumed_mmbtu"],
            state_efficiency["net_generation_mwh"],
        )
    ]
    state_efficiency["efficiency_defined"] = state_efficiency[
        "fuel_mmbtu_per_mwh"
    ].notna()

    undefined = state_efficiency[~state_efficiency["efficiency_defined"]]
    for state, year in zip(undefined["plant_state"], undefined["report_year"]):
        message = (
            f"{state} reported no net generation in {year}; its efficiency is undefined"
        )
        logger.warning(message)
        warnings.warn(message, UndefinedMetricError, stacklevel=2)

    return apply_dtypes(state_efficiency[STATE_EFFICIENCY_COLUMNS])


def get_single_year(state_efficiency: pd.DataFrame, description: str) -> int:
    """Returns the one reporting year contained in `state_efficiency`.

    Raises:
        ValueError: if the table holds no year or more than one year.
    """
    years = state_efficiency["report_year"].dropna().unique()
    if len(years) != 1:
        raise ValueError(
            f"Expected the {description} efficiency table to contain exactly one "
            f"year, found {sorted(years)}"
        )
    return int(years[0])


def calculate_efficiency_changes(
    base_efficiency: pd.DataFrame,
    comparison_efficiency: pd.DataFrame,
    base_year: int | None = None,
    comparison_year: int | None = None,
    sort_by: str = "percent",
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Compares the efficiency of each state between two years.

    States are matched by state code. A state that is missing from one year, or whose
    efficiency is undefined in either year, is excluded from the comparison and listed
    in the excluded states table with the reason.

    Args:
        base_efficiency (pd.DataFrame): state efficiency for the earlier year.
        comparison_efficiency (pd.DataFrame): state efficiency for the later year.
        base_year (int, optional): year of `base_efficiency`. Read from the table if
            not given.
        comparison_year (int, optional): year of `comparison_efficiency`. Read from
            the table if not given.
        sort_by (str, optional): how the changes are ranked, see
            `rank_efficiency_changes`. Defaults to "percent".

    Returns:
        tuple[pd.DataFrame, pd.DataFrame]: the ranked efficiency changes and the
            excluded states.
    """
    if base_year is None:
        base_year = get_single_year(base_efficiency, "base")
    if comparison_year is None:
        comparison_year = get_single_year(comparison_efficiency, "comparison")

    value_columns = ["plant_state", "fuel_mmbtu_per_mwh", "efficiency_defined"]
    combined = base_efficiency[value_columns].merge(
        comparison_efficiency[value_columns],
        how="outer",
        on="plant_state",
        suffixes=("_base", "_comparison"),
        validate="1:1",
        indicator=True,
    )

    excluded_states = identify_excluded_states(combined, base_year, comparison_year)

    complete = combined[
        (combined["_merge"] == "both")
        & combined["efficiency_defined_base"].eq(True)
        & combined["efficiency_defined_comparison"].eq(True)
    ]
    efficiency_changes = pd.DataFrame(
        {
            "plant_state": complete["plant_state"],
            "base_year": base_year,
            "comparison_year": comparison_year,
            "efficiency_base": complete["fuel_mmbtu_per_mwh_base"],
            "efficiency_comparison": complete["fuel_mmbtu_per_mwh_comparison"],
        }
    )
    efficiency_changes["delta_efficiency"] = (
        efficiency_changes["efficiency_comparison"]
        - efficiency_changes["efficiency_base"]
    )
    efficiency_changes["abs_delta_efficiency"] = efficiency_changes[
        "delta_efficiency"
    ].abs()
    # the percent change is undefined when the base year consumed no fuel
    efficiency_changes["percent_delta_efficiency"] = (
        efficiency_changes["delta_efficiency"]
        / efficiency_changes["efficiency_base"].replace(0, np.nan)
        * 100
    )
    logger.info(
        f"Calculated efficiency changes from {base_year} to {comparison_year} for "
        f"{len(efficiency_changes)} states, excluded "
        f"{excluded_states['plant_state'].nunique()} states"
    )

    efficiency_changes = rank_efficiency_changes(efficiency_changes, sort_by=sort_by)
    return efficiency_changes, excluded_states


def identify_excluded_states(
    combined: pd.DataFrame, base_year: int, comparison_year: int
) -> pd.DataFrame:
    """Lists the states that cannot be compared between years, with the reason.

    A state can be listed twice if its efficiency is undefined in both years.
    """
    reasons = [
        (combined["_merge"] == "right_only", "missing_base_year"),
        (combined["_merge"] == "left_only", "missing_comparison_year"),
        (
            (combined["_merge"] == "both")
            & combined["efficiency_defined_base"].eq(False),
            "undefined_base_year",
        ),
        (
            (combined["_merge"] == "both")
            & combined["efficiency_defined_comparison"].eq(False),
            "undefined_comparison_year",
        ),
    ]
    excluded = []
    for mask, reason in reasons:
        states = combined.loc[mask, "plant_state"]
        excluded.append(pd.DataFrame({"plant_state": states, "reason": reason}))
    excluded_states = (
        pd.concat(excluded, ignore_index=True)
        .sort_values(by=["plant_state", "reason"])
        .reset_index(drop=True)
    )

    for state, reason in zip(excluded_states["plant_state"], excluded_states["reason"]):
        if reason == "missing_base_year":
            message = (
                f"{state} reported in {comparison_year} but not in {base_year}; "
                "excluded from the comparison"
            )
        elif reason == "missing_comparison_year":
            message = (
                f"{state} reported in {base_year} but not in {comparison_year}; "
                "excluded from the comparison"
            )
        else:
            logger.info(f"{state} excluded from the comparison: {reason}")
            continue
        logger.warning(message)
        warnings.warn(message, MissingStateError, stacklevel=3)

    return apply_dtypes(excluded_states)


def rank_efficiency_changes(
    efficiency_changes: pd.DataFrame, sort_by: str = "percent"
) -> pd.DataFrame:
    """Ranks states by the magnitude of their efficiency change.

    States are ordered by the absolute value of the change, largest first, with ties
    broken by state code. States whose change is undefined are ranked last, in state
    code order.

    Args:
        efficiency_changes (pd.DataFrame): efficiency changes by state.
        sort_by (str, optional): "percent" to rank by percent change or "absolute" to
            rank by the change in the ratio itself. Defaults to "percent".

    Raises:
        ValueError: if `sort_by` is not a supported ranking.

    Returns:
        pd.DataFrame: `efficiency_changes` sorted, with a 1-based `rank` column.
    """
    if sort_by not in RANKING_COLUMNS:
        raise ValueError(
            f"Cannot rank by '{sort_by}', choose one of {list(RANKING_COLUMNS.keys())}"
        )
    magnitude = efficiency_changes[RANKING_COLUMNS[sort_by]].abs()
    ranked = (
        efficiency_changes.assign(magnitude=magnitude)
        .sort_values(
            by=["magnitude", "plant_state"],
            ascending=[False, True],
            na_position="last",
            kind="mergesort",
        )
        .drop(columns="magnitude")
        .reset_index(drop=True)
    )
    ranked["rank"] = np.arange(1, len(ranked) + 1)
    return apply_dtypes(ranked[EFFICIENCY_CHANGE_COLUMNS])
