#!/usr/bin/env python3
"""
hc11sdb — HC11 expression / watchpoint monitor

Usage:
    python hc11sdb.py [image] [--base 0x8000] [--format bin|s19]
                      [--batch cmds.txt] [--capacity 32] [--verbose]

Examples:
    python hc11sdb.py ECU.bin --base 0x8000
    python hc11sdb.py main.s19 --batch watch.txt
    echo "p 0x10+1" | python hc11sdb.py
"""

import sys
import os

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from hc11_sdb.cli import main


if __name__ == "__main__":
    sys.exit(main())
