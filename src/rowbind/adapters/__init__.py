"""Adapters connecting property bindings to external libraries."""
