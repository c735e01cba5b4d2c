#!/usr/bin/env python3
"""
Allow running runreport as a module: python -m runreport

This enables the following usage:
    python -m runreport COMMAND [OPTIONS]

Which is equivalent to:
    runreport COMMAND [OPTIONS]
"""

from runreport.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
