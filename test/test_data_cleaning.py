import pandas as pd
import pytest

import sfe.data_cleaning as data_cleaning
import sfe.validation as validation
from sfe.constants import MONTHS
from sfe.errors import ParseError

RAW_COLUMNS = [
    "plant_id_eia",
    "plant_state",
    "energy_source_code",
    "prime_mover_code",
    "net_generation_mwh",
    "fuel_consumed_mmbtu",
]


def make_raw(rows):
    return pd.DataFrame(rows, columns=RAW_COLUMNS)


@pytest.fixture
def raw_eia923():
    return make_raw(
        [
            ["1", "CA", "NG", "CT", "1,000", "8,000"],
            ["2", "CA", "SUN", "PV", "500", "0"],
            ["3", "TX", "BIT", "ST", "2000", "20000"],
            ["3", "TX", "NG", "CT", "0", "0"],
            ["99999", "TX", "NG", "CT", "100", "900"],
            ["4", "NY", "DFO", "GT", "10", "120"],
            ["5", "NY", "NG", "CT", "300", "2,400"],
            ["6", "WA", "WAT", "HY", "5000", "0"],
            ["7", "WA", "NG", "CT", "400", "3000"],
            ["8", "", "NG", "CT", "1", "1"],
        ]
    )


def test_coerce_numeric():
    values = pd.Series(["1,234", " 56 ", ".", "", "abc", None, "-3"])
    coerced = data_cleaning.coerce_numeric(values)

    assert coerced.iloc[0] == 1234
    assert coerced.iloc[1] == 56
    assert coerced.iloc[2:6].isna().all()
    assert coerced.iloc[6] == -3


def test_identify_malformed_rows():
    raw = make_raw(
        [
            ["1", "CA", "NG", "CT", "10", "80"],
            ["2", " ", "NG", "CT", "10", "80"],
            ["3", "TX", "NG", "CT", "", "80"],
            ["4", "TX", "NG", "CT", "ten", "80"],
            ["5", "TX", "NG", "CT", "-10", "80"],
            ["6", "TX", "NG", "CT", "10", "."],
        ]
    )
    reasons = data_cleaning.identify_malformed_rows(
        raw, ["net_generation_mwh", "fuel_consumed_mmbtu"]
    )

    assert pd.isna(reasons.iloc[0])
    assert list(reasons.iloc[1:]) == [
        "missing_plant_state",
        "missing_net_generation_mwh",
        "non_numeric_net_generation_mwh",
        "negative_net_generation_mwh",
        "missing_fuel_consumed_mmbtu",
    ]


def test_clean_eia923(raw_eia923):
    plant_records, malformed, _ = data_cleaning.clean_eia923(raw_eia923, 2019)

    assert len(plant_records) == 9
    assert list(malformed["malformed_reason"]) == ["missing_plant_state"]
    assert plant_records["net_generation_mwh"].iloc[0] == 1000
    assert plant_records["fuel_consumed_mmbtu"].iloc[6] == 2400
    assert (plant_records["report_year"] == 2019).all()


def test_clean_eia923_malformed_threshold(raw_eia923):
    raw = raw_eia923.copy()
    raw.loc[0, "net_generation_mwh"] = "n/a"
    # 2 of 10 rows are malformed
    with pytest.raises(ParseError, match="malformed"):
        data_cleaning.clean_eia923(raw, 2019, max_malformed_fraction=0.1)
    plant_records, malformed, _ = data_cleaning.clean_eia923(
        raw, 2019, max_malformed_fraction=0.2
    )
    assert len(plant_records) == 8
    assert len(malformed) == 2


def test_clean_eia923_empty():
    with pytest.raises(ParseError, match="No data rows"):
        data_cleaning.clean_eia923(make_raw([]), 2019)


def test_clean_eia923_fossil_only(raw_eia923):
    plant_records, _, _ = data_cleaning.clean_eia923(raw_eia923, 2019, fossil_only=True)

    assert set(plant_records["energy_source_code"]) == {"NG", "BIT", "DFO"}
    assert len(plant_records) == 7


def test_clean_eia923_exclude_state_fuel_increments(raw_eia923):
    plant_records, _, _ = data_cleaning.clean_eia923(
        raw_eia923, 2019, include_state_fuel_increments=False
    )

    assert 99999 not in plant_records["plant_id_eia"].tolist()
    assert len(plant_records) == 8


def test_clean_eia923_reported_year_mismatch(raw_eia923):
    raw = raw_eia923.assign(report_year="2018")
    plant_records, _, _ = data_cleaning.clean_eia923(raw, 2019)
    assert (plant_records["report_year"] == 2019).all()


def make_monthly_raw(net_generation, monthly_generation):
    raw = make_raw([["1", "CA", "NG", "CT", net_generation, "120"]])
    for i, month in enumerate(MONTHS):
        raw[f"net_generation_mwh_{month}"] = monthly_generation[i]
        raw[f"fuel_consumed_mmbtu_{month}"] = "10"
    return raw


def test_clean_eia923_monthly():
    raw = make_monthly_raw("78", [str(i) for i in range(1, 13)])
    plant_records, _, _ = data_cleaning.clean_eia923(raw, 2020, monthly=True)

    assert len(plant_records) == 12
    assert list(plant_records["report_month"]) == list(range(1, 13))
    assert list(plant_records["net_generation_mwh"]) == list(range(1, 13))
    assert plant_records["fuel_consumed_mmbtu"].sum() == 120


def test_clean_eia923_monthly_missing_columns(raw_eia923):
    with pytest.raises(ParseError, match="monthly columns"):
        data_cleaning.clean_eia923(raw_eia923, 2019, monthly=True)


def test_clean_eia923_returns_monthly_mismatches():
    raw = make_monthly_raw("1000", [str(i) for i in range(1, 13)])
    _, _, monthly_mismatches = data_cleaning.clean_eia923(raw, 2020, monthly=True)

    assert len(monthly_mismatches) == 1
    mismatch = monthly_mismatches.iloc[0]
    assert mismatch["column"] == "net_generation_mwh"
    assert mismatch["annual_total"] == 1000
    assert mismatch["monthly_sum"] == 78
    assert mismatch["difference"] == -922


def test_clean_eia923_annual_has_no_monthly_mismatches(raw_eia923):
    _, _, monthly_mismatches = data_cleaning.clean_eia923(raw_eia923, 2019)

    assert monthly_mismatches.empty
    assert list(monthly_mismatches.columns) == validation.MONTHLY_MISMATCH_COLUMNS


def test_aggregate_to_state_year(raw_eia923):
    plant_records, _, _ = data_cleaning.clean_eia923(raw_eia923, 2019)
    totals = data_cleaning.aggregate_to_state_year(plant_records).set_index(
        "plant_state"
    )

    assert list(totals.index) == ["CA", "NY", "TX", "WA"]
    assert totals.loc["CA", "net_generation_mwh"] == 1500
    assert totals.loc["CA", "fuel_consumed_mmbtu"] == 8000
    assert totals.loc["TX", "net_generation_mwh"] == 2100
    assert totals.loc["TX", "num_records"] == 3
    assert totals.loc["TX", "num_plants"] == 2
    assert (totals["report_year"] == 2019).all()


def test_aggregate_zero_generation_rows_are_kept():
    plant_records = pd.DataFrame(
        {
            "plant_id_eia": [1, 2],
            "plant_state": ["CA", "CA"],
            "report_year": [2020, 2020],
            "net_generation_mwh": [0.0, 100.0],
            "fuel_consumed_mmbtu": [50.0, 800.0],
        }
    )
    totals = data_cleaning.aggregate_to_state_year(plant_records)

    assert totals["net_generation_mwh"].iloc[0] == 100
    assert totals["fuel_consumed_mmbtu"].iloc[0] == 850
    assert totals["num_records"].iloc[0] == 2


def test_zero_generation_records_add_fuel_unless_dropped(raw_eia923):
    raw = raw_eia923.copy()
    raw.loc[3, "fuel_consumed_mmbtu"] = "500"

    plant_records, _, _ = data_cleaning.clean_eia923(raw, 2019)
    totals = data_cleaning.aggregate_to_state_year(plant_records).set_index(
        "plant_state"
    )
    assert totals.loc["TX", "fuel_consumed_mmbtu"] == 21400

    plant_records, _, _ = data_cleaning.clean_eia923(
        raw, 2019, drop_zero_generation=True
    )
    assert len(plant_records) == 8
    assert (plant_records["net_generation_mwh"] != 0).all()
    totals = data_cleaning.aggregate_to_state_year(plant_records).set_index(
        "plant_state"
    )
    assert totals.loc["TX", "fuel_consumed_mmbtu"] == 20900
    assert totals.loc["TX", "num_records"] == 2
