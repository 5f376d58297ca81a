# specify the date ranges for the analysis
# earliest_data_year is the first year EIA published the combined generation and fuel
# data as EIA-923 "Page 1". Prior years were reported on forms 906/920 with a
# different layout.
earliest_data_year = 2008
# latest_validated_year is the most recent year whose extract layout has been checked
# against EIA923_COLUMN_MAP
latest_validated_year = 2020

# years compared by default
default_base_year = 2019
default_comparison_year = 2020

# number of metadata rows EIA places above the header row of the Page 1 extract
EIA923_METADATA_ROWS = 5
EIA923_SHEET_NAME = "Page 1 Generation and Fuel Data"

# EIA marks values that were not reported with a period
EIA_MISSING_MARKER = "."

# plant id used by EIA for the state-fuel level increment rows, which hold estimated
# totals for plants that are not part of the monthly sample
STATE_FUEL_INCREMENT_PLANT_ID = 99999

# fraction of malformed rows above which an entire file load fails
MAX_MALFORMED_FRACTION = 0.10

# correlations are not reported for fewer joined states than this
MIN_CORRELATION_SAMPLE_SIZE = 3

CORRELATION_METHODS = ["pearson", "spearman", "kendall"]

MONTHS = [
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
]

# specify the energy_source_codes that are considered fossil fuels
FOSSIL_FUELS = [
    # coal
    "ANT",
    "BIT",
    "LIG",
    "SGC",
    "SUB",
    "WC",
    "RC",
    # petroleum
    "DFO",
    "JF",
    "KER",
    "PC",
    "PG",
    "RFO",
    "SGP",
    "WO",
    # natural gas and other gases
    "BFG",
    "NG",
    "OG",
]
