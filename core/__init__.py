"""Shared runtime helpers for boot diagnostics."""
