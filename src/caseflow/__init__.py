"""Caseflow: the case engagement lifecycle core for the attorney/paralegal marketplace."""

__version__ = "0.1.0"
