#!/usr/bin/env python3
"""
CLI entry point for pvrsched.cli module.

This allows running: python -m pvrsched.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
