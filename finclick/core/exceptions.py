"""
Exception hierarchy shared by the analysis library and the API layer.
"""


class FinClickError(Exception):
    """Base class for all library errors."""


class AnalysisError(FinClickError):
    """An analysis could not be computed."""

    def __init__(self, message: str, analysis_id: str = None):
        super().__init__(message)
        self.analysis_id = analysis_id


class InsufficientDataError(AnalysisError):
    """Inputs are missing, empty or too short for the requested analysis."""


class UnknownAnalysisError(FinClickError, KeyError):
    """Requested analysis id is not in the catalogue."""

    def __init__(self, analysis_id: str):
        super().__init__(analysis_id)
        self.analysis_id = analysis_id

    def __str__(self) -> str:
        return f"Unknown analysis '{self.analysis_id}'"


class StatementParseError(FinClickError):
    """An uploaded financial statement file could not be read."""
