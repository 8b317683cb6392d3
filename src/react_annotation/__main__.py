"""
Entry point for running the analyzer as a module.
This allows ``python -m react_annotation`` with relative imports.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
