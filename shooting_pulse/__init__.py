"""
Shooting Pulse - NYPD shooting incident analysis

Normalizes shooting incident reports, aggregates them into time series and
demographic cross-tabulations, and fits a logistic classifier for the
murder flag.
"""

__version__ = "0.1.0"
