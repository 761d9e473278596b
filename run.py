#!/usr/bin/env python3
"""
S3 Access Grant Conformance Tester

Run this script to check that an S3-compatible storage service allows and
denies bucket operations exactly as each configured access grant says.

Usage:
    python run.py                         # Use config.json
    python run.py -c custom.json          # Use custom config
    python run.py -g READ,READ_WRITE      # Test specific grants
    python run.py -s upload,download      # Run specific suites
    python run.py --list                  # Show the generated cases
    python run.py -q                      # Quiet mode (summary only)
    python run.py -j results.json         # Output JSON results
    python run.py --github-actions        # GitHub Actions mode
"""

import sys
from s3grants.cli import main

if __name__ == "__main__":
    sys.exit(main())
