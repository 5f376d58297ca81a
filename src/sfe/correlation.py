import warnings

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from sfe.column_checks import apply_dtypes
from sfe.constants import CORRELATION_METHODS, MIN_CORRELATION_SAMPLE_SIZE
from sfe.errors import InsufficientDataError
from sfe.logging_util import get_logger

logger = get_logger(__name__)

CORRELATION_COLUMNS = [
    "covariate",
    "method",
    "correlation_coefficient",
    "sample_size",
    "slope",
    "intercept",
    "r_squared",
    "p_value",
    "error",
]


def calculate_correlation(
    x: pd.Series, y: pd.Series, method: str = "pearson"
) -> tuple[float, int]:
    """Calculates the correlation coefficient between two aligned series.

    Pairs where either value is missing are dropped before counting the sample.

    Args:
        x (pd.Series): first variable.
        y (pd.Series): second variable, aligned with `x` by index.
        method (str, optional): "pearson", "spearman" or "kendall". Defaults to
            "pearson".

    Raises:
        ValueError: if `method` is not supported.
        InsufficientDataError: if fewer than MIN_CORRELATION_SAMPLE_SIZE complete
            pairs remain.

    Returns:
        tuple[float, int]: the coefficient (NaN if either variable is constant) and
            the number of pairs used.
    """
    if method not in CORRELATION_METHODS:
        raise ValueError(
            f"Unknown correlation method '{method}', choose one of {CORRELATION_METHODS}"
        )
    pairs = pd.DataFrame({"x": x, "y": y}).astype("float64").dropna()
    sample_size = len(pairs)
    if sample_size < MIN_CORRELATION_SAMPLE_SIZE:
        raise InsufficientDataError(
            f"{sample_size} complete observations, at least "
            f"{MIN_CORRELATION_SAMPLE_SIZE} are needed for a correlation"
        )
    if pairs["x"].nunique() < 2 or pairs["y"].nunique() < 2:
        logger.warning("Correlation is undefined because one variable is constant")
        return np.nan, sample_size
    return float(pairs["x"].corr(pairs["y"], method=method)), sample_size


def fit_linear_trend(x: pd.Series, y: pd.Series) -> dict:
    """Fits an ordinary least squares line of `y` on `x`.

    Args:
        x (pd.Series): explanatory variable.
        y (pd.Series): response variable, aligned with `x` by index.

    Returns:
        dict: the slope, intercept, r-squared and the p-value of the slope.
    """
    pairs = pd.DataFrame({"x": x, "y": y}).astype("float64").dropna()
    # small samples produce runtime warnings from statsmodels, e.g. a perfect fit
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        model = smf.ols("y ~ x", data=pairs).fit()
    return {
        "slope": model.params["x"],
        "intercept": model.params["Intercept"],
        "r_squared": model.rsquared,
        "p_value": model.pvalues["x"],
    }


def correlate_with_covariates(
    efficiency_changes: pd.DataFrame,
    covariates: pd.DataFrame,
    covariate_columns: list[str] | None = None,
    method: str = "pearson",
    change_column: str = "percent_delta_efficiency",
) -> pd.DataFrame:
    """Correlates the change in efficiency of each state with per-state covariates.

    The two tables are inner-joined on the state code. Each covariate is evaluated on
    its own: if one has too few complete observations, the problem is logged and
    recorded in the `error` column, and the remaining covariates are still calculated.

    Args:
        efficiency_changes (pd.DataFrame): output of
            `efficiency.calculate_efficiency_changes`.
        covariates (pd.DataFrame): output of `load_data.load_covariates`.
        covariate_columns (list[str], optional): covariates to evaluate. Defaults to
            every column of `covariates` except `plant_state`.
        method (str, optional): correlation method. Defaults to "pearson".
        change_column (str, optional): column of `efficiency_changes` to correlate.
            Defaults to "percent_delta_efficiency".

    Raises:
        ValueError: if a requested covariate is not in `covariates`.

    Returns:
        pd.DataFrame: one row per covariate.
    """
    if covariate_columns is None:
        covariate_columns = [col for col in covariates.columns if col != "plant_state"]
    missing = [col for col in covariate_columns if col not in covariates.columns]
    if len(missing) > 0:
        raise ValueError(f"Covariates {missing} not found in the covariate table")

    joined = efficiency_changes[["plant_state", change_column]].merge(
        covariates[["plant_state"] + covariate_columns],
        how="inner",
        on="plant_state",
        validate="1:1",
    )
    logger.info(
        f"{len(joined)} of {len(efficiency_changes)} states have covariate data"
    )

    results = []
    for covariate in covariate_columns:
        result = {
            "covariate": covariate,
            "method": method,
            "correlation_coefficient": np.nan,
            "sample_size": int(joined[[covariate, change_column]].notna().all(axis=1).sum()),
            "slope": np.nan,
            "intercept": np.nan,
            "r_squared": np.nan,
            "p_value": np.nan,
            "error": None,
        }
        try:
            coefficient, sample_size = calculate_correlation(
                joined[covariate], joined[change_column], method=method
            )
        except InsufficientDataError as e:
            logger.warning(f"Cannot correlate {change_column} with {covariate}: {e}")
            result["error"] = str(e)
            results.append(result)
            continue

        result["correlation_coefficient"] = coefficient
        result["sample_size"] = sample_size
        if np.isnan(coefficient):
            result["error"] = "correlation undefined for a constant variable"
        else:
            result.update(fit_linear_trend(joined[covariate], joined[change_column]))
            logger.info(
                f"{method} correlation of {change_column} with {covariate}: "
                f"{coefficient:.3f} (n={sample_size})"
            )
        results.append(result)

    return apply_dtypes(pd.DataFrame(results, columns=CORRELATION_COLUMNS))
