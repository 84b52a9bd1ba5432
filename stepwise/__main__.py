#!/usr/bin/env python3
"""Allow running Stepwise with `python -m stepwise`."""

from .cli import main

if __name__ == "__main__":
    main()
