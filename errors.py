"""Exception hierarchy for the comment analysis pipeline.

Errors are split by blast radius:

    Run-aborting (no partial report is returned):
        MetadataFetchError: Video metadata lookup failed
        PageFetchError: A comment page could not be fetched

    Per-item (the comment is dropped, the run continues):
        ItemAnalysisError: Sentiment or syntax analysis failed

    Sub-item (the comment is kept with an empty trend list):
        TrendExtractionError: Entity extraction failed

    Never surfaced to callers:
        PersistenceError: Storing the comment list failed

APIError is raised by the HTTP clients for non-2xx replies and is wrapped
into one of the above by the layer that knows its blast radius.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class APIError(PipelineError):
    """Remote API answered with a non-success status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class FetchError(PipelineError):
    """Base class for run-aborting fetch failures."""


class MetadataFetchError(FetchError):
    """Video metadata could not be retrieved."""


class PageFetchError(FetchError):
    """A page of comments could not be retrieved."""


class ItemAnalysisError(PipelineError):
    """Analysis of a single comment failed.

    Attributes:
        capability: Name of the analysis call that failed ('sentiment' or 'syntax')
    """

    def __init__(self, capability: str, message: str):
        super().__init__(f"{capability} analysis failed: {message}")
        self.capability = capability


class TrendExtractionError(PipelineError):
    """Entity extraction for a single comment failed."""


class PersistenceError(PipelineError):
    """Comment list could not be stored."""
