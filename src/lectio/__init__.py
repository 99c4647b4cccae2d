"""Lectio: citable document import and citation linking."""

__version__ = "0.1.0"
