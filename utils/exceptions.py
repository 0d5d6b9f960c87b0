# utils/exceptions.py
from fastapi import HTTPException, status
from typing import Any, Optional


class GatewayError(HTTPException):
    """Base for every error the gateway reports to the caller."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        body: Any = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.body = body

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(GatewayError):
    def __init__(self, detail: str):
        super().__init__(detail, status_code=status.HTTP_400_BAD_REQUEST)


class ProviderConfigError(GatewayError):
    def __init__(self, detail: str):
        super().__init__(detail, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class ProviderError(GatewayError):
    """Upstream failure. `kind` names the failure class for logs."""

    kind = "provider_error"

    def __init__(
        self,
        detail: str,
        http_status: Optional[int] = None,
        body: Any = None,
        step: Optional[str] = None,
    ):
        super().__init__(
            detail,
            status_code=http_status or status.HTTP_500_INTERNAL_SERVER_ERROR,
            body=body,
        )
        self.http_status = http_status
        self.step = step


class ProviderHTTPError(ProviderError):
    kind = "http_error"

    def __init__(self, http_status: int, body: Any = None, step: Optional[str] = None, detail: Optional[str] = None):
        if detail is None:
            where = f" during {step}" if step else ""
            detail = f"Provider returned HTTP {http_status}{where}"
        super().__init__(detail, http_status=http_status, body=body, step=step)


class ProviderTaskFailedError(ProviderError):
    kind = "task_failed"

    def __init__(self, body: Any = None, task_id: Optional[str] = None):
        detail = f"Provider task {task_id} failed" if task_id else "Provider task failed"
        super().__init__(detail, body=body)
        self.task_id = task_id


class ProviderTimeoutError(ProviderError):
    kind = "timeout"

    def __init__(self, detail: str = "Provider did not respond in time", body: Any = None, step: Optional[str] = None):
        super().__init__(detail, http_status=status.HTTP_504_GATEWAY_TIMEOUT, body=body, step=step)


class ParseError(ProviderError):
    kind = "parse_error"

    def __init__(self, detail: str, body: Any = None, step: Optional[str] = None):
        super().__init__(detail, body=body, step=step)
