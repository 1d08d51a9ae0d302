"""
Error types for the link summarizer.

Every error carries the stage it happened in and whether a caller could
reasonably retry, matching the ``{stage, message, recoverable}`` error shape
returned by the HTTP function.

Only ConfigurationError, RequestTimeoutError, UpstreamError, RefusalError and
EmptyContentError escape the pipeline. FetchError is raised and caught inside
the content strategies and only ever shows up in diagnostics.
"""


class SummarizeError(Exception):
    """Base class for all link summarizer errors."""

    stage = 'processing'
    recoverable = False

    def __init__(self, message: str, stage: str = None, recoverable: bool = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            'stage': self.stage,
            'message': self.message,
            'recoverable': self.recoverable,
        }


class ConfigurationError(SummarizeError):
    """Settings are invalid or a required capability is missing.

    Always raised before any network call is made.
    """

    stage = 'configuration'


class FetchError(SummarizeError):
    """Network failure or non-2xx response while fetching page content."""

    stage = 'fetch'
    recoverable = True

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class RequestTimeoutError(SummarizeError):
    """The cancellation token fired before a request completed."""

    stage = 'summarization'
    recoverable = True

    def __init__(self, action: str, timeout_ms: int = None):
        if timeout_ms is not None:
            message = f'{action} timed out after {timeout_ms}ms'
        else:
            message = f'{action} timed out'
        super().__init__(message)
        self.action = action
        self.timeout_ms = timeout_ms


class UpstreamError(SummarizeError):
    """The completion endpoint answered with a non-2xx status or unusable body."""

    stage = 'summarization'

    def __init__(self, message: str, status: int = None, body: str = None):
        super().__init__(message)
        self.status = status
        self.body = body


class RefusalError(SummarizeError):
    """The model explicitly declined to answer."""

    stage = 'summarization'

    def __init__(self, refusal: str, provider: str = 'OpenAI'):
        super().__init__(f'{provider} refusal: {refusal}')
        self.refusal = refusal


class EmptyContentError(SummarizeError):
    """Every strategy ran but produced no text worth summarizing."""

    stage = 'fetch'
    recoverable = True

    def __init__(self, url: str):
        super().__init__(f'No content could be extracted from {url}')
        self.url = url
