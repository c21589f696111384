"""Command line interface for pvrsched."""
