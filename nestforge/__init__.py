"""nestforge -- scaffold a new Nest project and wire its optional features."""

__version__ = "0.1.0"
