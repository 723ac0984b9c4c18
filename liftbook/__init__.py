"""Lift booking service: resident submissions, admin review, month calendar."""

__version__ = "0.1.0"
