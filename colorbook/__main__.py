"""
Main entry point for the colorbook package.

Allows running: python -m colorbook <command>
"""

import sys
from colorbook.cli import main

if __name__ == "__main__":
    sys.exit(main())
