#!/usr/bin/env python
from setuptools import find_packages, setup

setup(
    name="state-fuel-efficiency",
    description="Changes in the fuel efficiency of U.S. electricity generation by "
    "state, from EIA-923 generation and fuel data.",
    # setuptools_scm lets us automagically get package version from GitHub tags
    setup_requires=["setuptools_scm"],
    use_scm_version={"fallback_version": "0.1.0"},
    python_requires=">=3.10",
    install_requires=[
        "coloredlogs",
        "numpy",
        "openpyxl",
        "pandas",
        "scipy",
        "statsmodels",
    ],
    extras_require={"test": ["pytest"]},
    # Directory to search recursively for __init__.py files defining Python packages
    packages=find_packages("src"),
    # Location of the "root" package:
    package_dir={"": "src"},
    package_data={"sfe": ["reference_tables/*.csv"]},
)
