"""Command-line interface for cdp-driver."""
