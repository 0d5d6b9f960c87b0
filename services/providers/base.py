# services/providers/base.py
"""
Shared pieces for provider adapters.

Every adapter satisfies ProviderAdapter and talks HTTP through
ProviderHTTPClient, which owns the requests session, credentials and the
mapping of transport failures onto the gateway error taxonomy.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import requests

from config import ProviderConfig
from models.schemas import CompressedImage, ProviderTask
from services.result_normalizer import FieldMap
from utils.exceptions import ParseError, ProviderConfigError, ProviderHTTPError, ProviderTimeoutError

logger = logging.getLogger(__name__)

LOG_BODY_LIMIT = 500


@dataclass
class ProviderRawResult:
    """What an adapter hands back: the vendor payload plus bookkeeping."""

    payload: Dict[str, Any]
    task: Optional[ProviderTask] = None
    steps: List[str] = field(default_factory=list)
    text: Optional[str] = None


class ProviderAdapter(Protocol):
    mode_tag: str
    requires_doc_type: bool
    field_map: FieldMap

    async def execute(
        self,
        id_image: CompressedImage,
        selfie_image: CompressedImage,
        doc_type: Optional[str],
    ) -> ProviderRawResult:
        ...


def to_base64(image: CompressedImage) -> str:
    return base64.b64encode(image.data).decode('utf-8')


def truncate(value: Any, limit: int = LOG_BODY_LIMIT) -> str:
    text = value if isinstance(value, str) else repr(value)
    return text if len(text) <= limit else text[:limit] + "..."


class ProviderHTTPClient:
    """Blocking requests session driven from async code via worker threads."""

    def __init__(self, config: ProviderConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session if session is not None else requests.Session()

    def check_credentials(self) -> None:
        if not self.config.api_key:
            raise ProviderConfigError(
                f"Provider credentials not configured for mode '{self.config.mode}'"
            )

    def auth_headers(self) -> Dict[str, str]:
        token = self.config.api_key
        if self.config.auth_scheme:
            token = f"{self.config.auth_scheme} {token}"
        return {self.config.auth_header: token, 'Accept': 'application/json'}

    async def request(
        self,
        method: str,
        url: str,
        step: str,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> requests.Response:
        headers = self.auth_headers()
        headers.update(kwargs.pop('headers', None) or {})
        timeout = timeout or self.config.request_timeout

        logger.info(f"[{step}] {method} {url}")
        try:
            response = await asyncio.to_thread(
                self.session.request,
                method,
                url,
                headers=headers,
                timeout=timeout,
                **kwargs,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"[{step}] Timeout after {timeout}s: {str(e)}")
            raise ProviderTimeoutError(
                f"Provider request timed out during {step}", step=step
            ) from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"[{step}] Connection Error: cannot reach {url} - {str(e)}")
            raise ProviderHTTPError(
                502, body=None, step=step, detail=f"Cannot reach provider during {step}"
            ) from e

        logger.info(f"[{step}] Response Status: {response.status_code}")
        logger.debug(f"[{step}] Response Body: {truncate(response.text)}")
        return response

    @staticmethod
    def error_body(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def raise_for_status(self, response: requests.Response, step: str) -> None:
        if 200 <= response.status_code < 300:
            return
        body = self.error_body(response)
        logger.error(f"[{step}] Provider API Error: Status {response.status_code} - {truncate(body)}")
        raise ProviderHTTPError(response.status_code, body=body, step=step)

    @staticmethod
    def json_object(response: requests.Response, step: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(
                f"Provider returned non-JSON body during {step}", body=response.text, step=step
            ) from e
        if not isinstance(data, dict):
            raise ParseError(
                f"Provider returned unexpected body during {step}", body=data, step=step
            )
        return data
