"""Detect and classify meaningful content changes across monitored web pages."""

__version__ = "1.0.0"
