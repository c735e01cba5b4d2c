#!/usr/bin/env python3
"""
Send the test report email for a finished run.

Equivalent to ``runreport send-report``; kept as a script so CI jobs can
run it from a checkout without installing the package.

Usage:
    python send_test_report_email.py [OPTIONS]

Options:
    --run-info FILE     Path to run-info.json (default: RUN_INFO_PATH)
    --results FILE      Path to results.json (default: RESULTS_PATH)
    --recipients TEXT   Semicolon separated recipients (default: EMAIL_RECIPIENTS)
    --report-url URL    Link to the full report (default: REPORT_URL)
    --scan-dir DIR      Directory scanned for results.json files
    --help              Show this message and exit
"""

import sys
from pathlib import Path

# Add the src directory to the Python path
src_dir = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(src_dir))

from runreport.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main(["send-report", *sys.argv[1:]]))
