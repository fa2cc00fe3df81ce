"""Diagnostic pass orchestration and report rendering."""

from services.diagnostic_pass import DiagnosticPass, DiagnosticReport
from services.report import format_report

__all__ = ["DiagnosticPass", "DiagnosticReport", "format_report"]
