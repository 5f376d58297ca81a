import pandas as pd
import pytest

import sfe.load_data as load_data
from sfe.errors import ParseError

from conftest import (
    EIA923_HEADERS,
    MONTHLY_HEADERS,
    write_eia923_csv,
    write_eia923_xlsx,
)


def test_read_eia923_standardizes_multiline_headers(eia923_2019):
    raw = load_data.read_eia923_generation_fuel(eia923_2019)

    assert list(raw.columns) == [
        "plant_id_eia",
        "plant_state",
        "prime_mover_code",
        "energy_source_code",
        "report_year",
        "fuel_consumed_mmbtu",
        "net_generation_mwh",
    ]
    assert len(raw) == 7
    # values are read as text, thousands separators included
    assert raw.loc[0, "net_generation_mwh"] == "600,000"


def test_read_eia923_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_data.read_eia923_generation_fuel(str(tmp_path / "missing.csv"))


def test_read_eia923_missing_required_column(tmp_path):
    headers = [h for h in EIA923_HEADERS if not h.startswith("Net Generation")]
    path = write_eia923_csv(
        tmp_path / "no_generation.csv",
        [["101", "CA", "CT", "NG", "2019", "300"]],
        headers=headers,
    )
    with pytest.raises(ParseError, match="net_generation_mwh"):
        load_data.read_eia923_generation_fuel(path)


def test_read_eia923_wrong_skiprows(eia923_2019):
    with pytest.raises(ParseError):
        load_data.read_eia923_generation_fuel(eia923_2019, skiprows=0)


def test_load_plant_records(eia923_2019):
    plant_records, malformed, _ = load_data.load_plant_records(
        eia923_2019, 2019, max_malformed_fraction=0.2
    )

    assert len(plant_records) == 6
    assert len(malformed) == 1
    assert malformed["plant_state"].iloc[0] == "AZ"
    assert malformed["malformed_reason"].iloc[0] == "non_numeric_net_generation_mwh"

    california = plant_records[plant_records["plant_state"] == "CA"]
    assert len(california) == 2
    assert california["net_generation_mwh"].sum() == 1_000_000
    assert california["fuel_consumed_mmbtu"].sum() == 500_000
    assert (plant_records["report_year"] == 2019).all()
    assert plant_records["report_month"].isna().all()


def test_load_plant_records_too_many_malformed_rows(eia923_2019):
    # one malformed row in seven is above the default threshold of 10%
    with pytest.raises(ParseError, match="malformed"):
        load_data.load_plant_records(eia923_2019, 2019)


def test_load_plant_records_monthly(tmp_path):
    monthly_values = [str(i) for i in range(1, 13)] + [str(10 * i) for i in range(1, 13)]
    path = write_eia923_csv(
        tmp_path / "monthly.csv",
        [["101", "CA", "CT", "NG", "2019", "780", "78"] + monthly_values],
        headers=EIA923_HEADERS + MONTHLY_HEADERS,
    )
    plant_records, _, _ = load_data.load_plant_records(path, 2019, monthly=True)

    assert len(plant_records) == 12
    assert list(plant_records["report_month"]) == list(range(1, 13))
    assert plant_records["net_generation_mwh"].sum() == 78
    assert plant_records["fuel_consumed_mmbtu"].sum() == 780


def test_load_plant_records_from_xlsx(tmp_path):
    path = write_eia923_xlsx(
        tmp_path / "eia923_2019.xlsx",
        [
            [101, "CA", "CT", "NG", 2019, 300000, 600000],
            [102, "CA", "ST", "NG", 2019, 200000, 400000],
            [201, "TX", "ST", "BIT", 2019, 20000000, 2000000],
        ],
    )
    plant_records, malformed, _ = load_data.load_plant_records(path, 2019)

    assert len(plant_records) == 3
    assert len(malformed) == 0
    california = plant_records[plant_records["plant_state"] == "CA"]
    assert california["net_generation_mwh"].sum() == 1_000_000
    assert california["fuel_consumed_mmbtu"].sum() == 500_000
    assert list(plant_records["plant_id_eia"]) == [101, 102, 201]


def test_read_eia923_xlsx_wrong_sheet(tmp_path):
    path = write_eia923_xlsx(
        tmp_path / "eia923_2019.xlsx",
        [[101, "CA", "CT", "NG", 2019, 300000, 600000]],
        sheet_name="Page 2 Stocks Data",
    )
    with pytest.raises(ParseError, match="Could not parse"):
        load_data.read_eia923_generation_fuel(path)


def test_read_eia923_legacy_xls(tmp_path):
    path = tmp_path / "eia923_2019.xls"
    path.write_bytes(b"\xd0\xcf\x11\xe0")
    with pytest.raises(ParseError, match=".xls workbooks are not supported"):
        load_data.read_eia923_generation_fuel(str(path))


def test_normalize_state_codes():
    states = pd.Series(["CA", " tx ", "New  York", "district of columbia", "Atlantis", None])
    normalized = load_data.normalize_state_codes(states)

    assert list(normalized.iloc[:4]) == ["CA", "TX", "NY", "DC"]
    assert normalized.iloc[4:].isna().all()


def test_load_covariates(covariates_csv):
    covariates = load_data.load_covariates(covariates_csv)

    assert list(covariates.columns) == [
        "plant_state",
        "population_density",
        "lockdown_stringency",
    ]
    # unrecognized states are dropped
    assert list(covariates["plant_state"]) == ["CA", "TX", "WA", "NY", "NV"]
    assert covariates.loc[0, "population_density"] == 253.7
    assert pd.isna(covariates.loc[0, "lockdown_stringency"])


def test_load_covariates_missing_state_column(covariates_csv):
    with pytest.raises(ParseError, match="region"):
        load_data.load_covariates(covariates_csv, state_column="region")


def test_load_covariates_duplicate_state(tmp_path):
    path = tmp_path / "duplicates.csv"
    pd.DataFrame(
        {"state": ["CA", "California", "TX"], "population_density": [1, 2, 3]}
    ).to_csv(path, index=False)
    with pytest.raises(ParseError, match="CA"):
        load_data.load_covariates(str(path))
