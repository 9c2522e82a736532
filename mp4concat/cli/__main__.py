#!/usr/bin/env python3
"""
Entry point for `python -m mp4concat.cli`
"""
import sys

from .run_concat import main

if __name__ == "__main__":
    sys.exit(main())
