"""
Custom exceptions for the analysis engine

These never cross a calculator boundary: each calculator catches them and
returns its canonical neutral value instead.
"""


class AnalysisError(Exception):
    """Base exception for analysis errors"""


class InsufficientDataError(AnalysisError):
    """Window shorter than an indicator's minimum"""

    def __init__(self, indicator: str, required: int, available: int):
        self.indicator = indicator
        self.required = required
        self.available = available
        super().__init__(f"{indicator} needs {required} bars, got {available}")


class NumericDegeneracyError(AnalysisError):
    """Zero range, zero denominator or non-finite intermediate value"""


class StructuralGapError(AnalysisError):
    """A result is missing a required field"""
