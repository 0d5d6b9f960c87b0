# services/providers/sync_provider.py
"""
One-shot face match: both images in a single JSON POST, verdict in the reply.
Default wiring targets SpringScan /v4/faceMatch (document1 / document2).
"""

import logging
from typing import Optional

import requests

from config import ProviderConfig
from models.schemas import CompressedImage
from services.providers.base import ProviderHTTPClient, ProviderRawResult, to_base64
from services.result_normalizer import DEFAULT_FIELD_MAP, FieldMap

logger = logging.getLogger(__name__)


class SyncProvider:
    mode_tag = "sync-facematch"
    requires_doc_type = False

    def __init__(
        self,
        config: ProviderConfig,
        session: Optional[requests.Session] = None,
        field_map: FieldMap = DEFAULT_FIELD_MAP,
    ):
        self.config = config
        self.http = ProviderHTTPClient(config, session)
        self.field_map = field_map

    async def execute(
        self,
        id_image: CompressedImage,
        selfie_image: CompressedImage,
        doc_type: Optional[str],
    ) -> ProviderRawResult:
        self.http.check_credentials()

        first, second = self.config.image_fields
        body = {
            first: to_base64(id_image),
            second: to_base64(selfie_image),
        }
        if doc_type:
            body["docType"] = doc_type

        logger.info(
            f"Sync face match: {id_image.encoded_size_bytes} + {selfie_image.encoded_size_bytes} bytes"
        )
        response = await self.http.request(
            'POST',
            self.config.submit_url,
            step="face_match",
            json=body,
            timeout=self.config.upload_timeout,
        )
        self.http.raise_for_status(response, "face_match")
        payload = self.http.json_object(response, "face_match")

        return ProviderRawResult(payload=payload, steps=["face_match"])
