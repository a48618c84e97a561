"""Errors raised by the analysis core and translated to HTTP responses by the API.

Every failure of an ``analyze`` call surfaces as one of these. None of them is
retried automatically; the operator decides whether to resubmit.
"""


class AnalysisError(Exception):
    """Base class for all analysis failures."""


class ValidationError(AnalysisError):
    """Missing or invalid input. Raised before any I/O happens."""


class ArtifactStoreError(AnalysisError):
    """The audio artifact could not be written. No record was created."""


class ClassifierError(AnalysisError):
    """Classification failed or timed out.

    The artifact was already stored and is left behind as an orphan.
    """


class PersistenceError(AnalysisError):
    """Classification succeeded but the record could not be written."""
