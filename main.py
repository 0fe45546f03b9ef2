#!/usr/bin/env python3
"""
EC2 Dedicated Host -> Default Tenancy Migration Tool

Stops each instance listed in the input CSV, moves it to default tenancy,
converts its License Manager usage operation and starts it again, many
instances at a time.

This script runs straight from a source checkout: it puts the local `src/`
directory on sys.path before importing. Installed copies should use the
`ec2-tenancy-migrator` console script instead.
"""

import os
import sys

REPO_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_PATH = os.path.join(REPO_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from cli import main

if __name__ == "__main__":
    sys.exit(main())
