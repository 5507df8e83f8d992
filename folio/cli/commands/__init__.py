"""Folio CLI command implementations."""
