import pandas as pd
import pytest
from openpyxl import Workbook

from sfe.constants import EIA923_SHEET_NAME, MONTHS

EIA923_HEADERS = [
    "Plant Id",
    "Plant State",
    "Reported\nPrime Mover",
    "Reported\nFuel Type Code",
    "YEAR",
    "Total Fuel Consumption\nMMBtu",
    "Net Generation\n(Megawatthours)",
]

MONTHLY_HEADERS = [f"Netgen\n{month.title()}" for month in MONTHS] + [
    f"Tot_MMBtu\n{month.title()}" for month in MONTHS
]

METADATA_ROWS = [
    "PAGE 1: GENERATION AND FUEL DATA,,,,,,",
    "Final Revision,,,,,,",
    "Source: EIA-923 Power Plant Operations Report,,,,,,",
    "Units: fuel consumption in MMBtu and net generation in MWh,,,,,,",
    ",,,,,,",
]


def write_eia923_csv(path, rows, headers=EIA923_HEADERS):
    """Writes rows in the layout of the EIA-923 Page 1 csv export, with five
    metadata rows above the header."""
    with open(path, "w", newline="") as f:
        f.write("\n".join(METADATA_ROWS) + "\n")
        pd.DataFrame(rows, columns=headers).to_csv(f, index=False)
    return str(path)


def write_eia923_xlsx(
    path, rows, headers=EIA923_HEADERS, sheet_name=EIA923_SHEET_NAME
):
    """Writes rows in the layout of the EIA-923 Page 1 spreadsheet, with five
    metadata rows above the multi-line header."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    for metadata in METADATA_ROWS[:4]:
        ws.append([metadata.split(",")[0]])
    ws.append(["Data as of release date"])
    ws.append(headers)
    for row in rows:
        ws.append(row)
    wb.save(path)
    return str(path)


@pytest.fixture
def data_store(tmp_path, monkeypatch):
    """Points the data store to a temporary folder."""
    store = tmp_path / "data_store"
    monkeypatch.setenv("SFE_DATA_STORE", str(store))
    return store


@pytest.fixture
def eia923_2019(tmp_path):
    rows = [
        ["101", "CA", "CT", "NG", "2019", "300,000", "600,000"],
        ["102", "ca", "ST", "NG", "2019", "200,000", "400,000"],
        ["201", "TX", "ST", "BIT", "2019", "20,000,000", "2,000,000"],
        ["301", "WA", "CT", "NG", "2019", "5,000,000", "1,000,000"],
        ["401", "NY", "CT", "NG", "2019", "4,000,000", "500,000"],
        ["501", "NV", "GT", "NG", "2019", "1,000", "100"],
        ["601", "AZ", "GT", "NG", "2019", "10", "n/a"],
    ]
    return write_eia923_csv(tmp_path / "eia923_2019.csv", rows)


@pytest.fixture
def eia923_2020(tmp_path):
    rows = [
        ["101", "CA", "CT", "NG", "2020", "440,000", "800,000"],
        ["201", "TX", "ST", "BIT", "2020", "18,000,000", "2,000,000"],
        ["301", "WA", "CT", "NG", "2020", "6,000,000", "1,000,000"],
        ["401", "NY", "CT", "NG", "2020", "4,000,000", "500,000"],
        ["501", "NV", "GT", "NG", "2020", "10", "0"],
    ]
    return write_eia923_csv(tmp_path / "eia923_2020.csv", rows)


@pytest.fixture
def covariates_csv(tmp_path):
    covariates = pd.DataFrame(
        {
            "state": ["California", "TX", "wa", "New York", "NV", "Atlantis"],
            "population_density": ["253.7", "111.6", "115.9", "421.0", "28.5", "1"],
            "lockdown_stringency": ["", "", "", "62.1", "58.3", "10"],
            "notes": ["west", "south", "west", "east", "west", "sea"],
        }
    )
    path = tmp_path / "covariates.csv"
    covariates.to_csv(path, index=False)
    return str(path)
