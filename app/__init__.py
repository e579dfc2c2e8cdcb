"""
PediBrief - Pediatric Discharge Summary Simplifier

Turns a pasted pediatric discharge summary into a parent-friendly,
structured explanation with a short comprehension quiz, a printable
PDF and an optional results email for the care team.

IMPORTANT: PediBrief only rewrites what the discharge summary says.
It never adds clinical facts and never replaces the care team.
"""

__version__ = "1.0.0"
__author__ = "PediBrief Team"
