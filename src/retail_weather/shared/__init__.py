"""Shared models, errors, logging, metrics and I/O for the reconciliation pipeline."""
