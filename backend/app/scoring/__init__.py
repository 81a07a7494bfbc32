"""Scoring engines for the darts game variants."""

from . import checkout, cricket, x01

__all__ = [
    "checkout",
    "cricket",
    "x01",
]
