#!/usr/bin/env python3
"""
Setup file for parquet-probe
"""

from setuptools import setup

setup(
    name="parquet-probe",
    version="0.1.0",
    description="An interactive terminal browser for Parquet file metadata",
    author="",
    author_email="",
    py_modules=[
        "parquet_probe",
        "probe_commands",
        "probe_footer",
        "probe_metadata",
        "probe_render",
        "probe_session",
        "probe_workspace",
    ],
    python_requires=">=3.11",
    install_requires=[
        "thrift",
    ],
    extras_require={
        "dev": [
            "pytest",
            "coverage",
            "pandas",
            "pyarrow",
        ],
    },
    entry_points={
        "console_scripts": [
            "parquet-probe=parquet_probe:main",
        ],
    },
)
