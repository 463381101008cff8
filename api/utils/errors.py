from __future__ import annotations


class ServiceError(Exception):
    def __init__(self, message: str, status: int = 400, code: str = "bad_request"):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class GatewayError(ServiceError):
    """The language-model provider failed; nothing already applied is rolled back."""

    def __init__(self, message: str):
        super().__init__(message, status=502, code="gateway_error")


class MalformedMutationCommand(ServiceError):
    def __init__(self, message: str, raw: str = ""):
        super().__init__(message, status=422, code="malformed_mutation")
        self.raw = raw
