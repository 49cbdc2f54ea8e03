#!/usr/bin/env python3
"""
Main test runner for parquet-probe

This script runs all the tests for parquet-probe and reports the coverage.
"""

import os
import sys
import unittest
import coverage

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.dirname(TESTS_DIR)

# Add the project root and this directory to sys.path
sys.path.insert(0, ROOT_DIR)
sys.path.insert(0, TESTS_DIR)

SOURCE_MODULES = [
    "parquet_probe",
    "probe_commands",
    "probe_footer",
    "probe_metadata",
    "probe_render",
    "probe_session",
    "probe_workspace",
]


def create_test_suite():
    """Collect every test_*.py module in this directory"""
    return unittest.defaultTestLoader.discover(TESTS_DIR, pattern="test_*.py", top_level_dir=TESTS_DIR)


if __name__ == "__main__":
    # Start coverage before the modules under test are imported
    cov = coverage.Coverage(source=SOURCE_MODULES)
    cov.start()

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(create_test_suite())

    cov.stop()
    cov.save()
    print("\nCoverage Report:")
    cov.report()

    if "--html" in sys.argv:
        cov.html_report(directory="htmlcov")
        print("\nHTML report generated in 'htmlcov' directory")

    sys.exit(0 if result.wasSuccessful() else 1)
