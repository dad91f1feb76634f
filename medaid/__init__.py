"""MedAid Claims - medical-aid direct claim submission service."""

__version__ = "1.0.0"
