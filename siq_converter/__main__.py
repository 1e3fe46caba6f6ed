#!/usr/bin/env python3
"""
Entry point for siq_converter package when run as a module.
This allows the package to be executed with: python -m siq_converter
"""

from siq_converter.cli import main

if __name__ == '__main__':
    main()
