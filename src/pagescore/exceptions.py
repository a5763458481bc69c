"""Error taxonomy for page analysis and scoring."""

from typing import Optional


class PageScoreError(Exception):
    """Base class for every error raised by pagescore."""


class ExtractionError(PageScoreError):
    """A single extractor failed.

    Recovered by the assembler, which substitutes the empty sub-record.
    """

    def __init__(self, section: str, cause: Optional[BaseException] = None):
        self.section = section
        self.cause = cause
        super().__init__(f"Extraction of '{section}' failed: {cause}")


class RuleEvaluationError(PageScoreError):
    """A rule predicate raised while being evaluated."""

    def __init__(self, rule_id: str, cause: Optional[BaseException] = None):
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"Rule '{rule_id}' raised during evaluation: {cause}")


class AnalysisAbortedError(PageScoreError):
    """The in-flight analysis was cancelled before it completed."""

    def __init__(self, stage: Optional[str] = None):
        self.stage = stage
        message = "Analysis aborted"
        if stage:
            message = f"Analysis aborted before stage '{stage}'"
        super().__init__(message)


class BusyError(PageScoreError):
    """An analysis was requested while another one is running."""

    def __init__(self, message: str = "Analysis already in progress"):
        super().__init__(message)


class AssemblyError(PageScoreError):
    """The document is detached or otherwise unavailable for analysis."""


class FetchError(PageScoreError):
    """Downloading a page failed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not fetch {url}: {reason}")
