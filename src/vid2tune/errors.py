from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for every failure raised while relaying a file."""


class ValidationError(RelayError):
    pass


class ProviderRequestError(RelayError):
    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} ({status_code})"
        super().__init__(f"{provider}: {message}")


class UnexpectedStatusError(ProviderRequestError):
    def __init__(self, provider: str, status: str) -> None:
        self.status = status
        super().__init__(provider, f"unrecognized job status {status!r}")


class PipelineSetupError(RelayError):
    pass


class JobFailedError(RelayError):
    pass


class PipelineResultError(RelayError):
    pass


class JobTimeoutError(RelayError):
    pass
