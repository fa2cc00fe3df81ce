"""Configuration package utilities."""

__all__ = ["ConfigController", "DiagnosticSettings"]


def __getattr__(name: str):
    if name == "ConfigController":
        from config.controller import ConfigController

        return ConfigController
    if name == "DiagnosticSettings":
        from config.settings import DiagnosticSettings

        return DiagnosticSettings
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
