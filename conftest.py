"""
Pytest configuration.

The tool's modules live flat under src/ and import each other by bare name,
so src/ goes on sys.path before collection.
"""

import os
import sys

SRC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)
