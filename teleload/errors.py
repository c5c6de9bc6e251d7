# teleload/errors.py
from __future__ import annotations


class PipelineError(RuntimeError):
    """Base for everything the download / audio pipelines can fail with."""

    kind = "error"


class ProviderError(PipelineError):
    kind = "provider_error"

    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class ResolutionNotFound(PipelineError):
    kind = "not_found"


class AccessExpired(PipelineError):
    kind = "access_expired"


class TranscodeUnavailable(PipelineError):
    kind = "transcode_unavailable"


class DownloadFailed(PipelineError):
    kind = "download_failed"


class TranscodeFailed(PipelineError):
    kind = "transcode_failed"


class TokenExpiredOrMissing(PipelineError):
    kind = "token_expired"


class DeliveryFailed(PipelineError):
    kind = "delivery_failed"
