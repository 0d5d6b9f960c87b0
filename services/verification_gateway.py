# services/verification_gateway.py
"""
Verification Gateway:
Received -> Validated -> Compressed -> ProviderInvoked -> Normalized -> Returned
Any step may end in Errored; the raised GatewayError carries the status.
"""

import asyncio
import logging
import uuid
from typing import Callable, Optional

from config import ProviderConfig
from models.schemas import CompressedImage, VerificationRequest, VerificationResult
from services.image_compressor import compress
from services.providers.base import ProviderAdapter, truncate
from services.result_normalizer import normalize
from utils.exceptions import GatewayError, ProviderTimeoutError, ValidationError

logger = logging.getLogger(__name__)

MISSING_IMAGES = "Both idImage and selfieImage are required"


class VerificationGateway:
    """
    Orchestrates one face-match request against the configured provider.
    The adapter is chosen once at construction; requests never switch vendor.
    """

    def __init__(
        self,
        config: ProviderConfig,
        adapter: ProviderAdapter,
        compressor: Callable[[bytes, int], CompressedImage] = compress,
    ):
        self.config = config
        self.adapter = adapter
        self.compressor = compressor

    @property
    def mode(self) -> str:
        return self.config.mode

    def validate(self, request: VerificationRequest) -> None:
        if not request.id_image or not request.selfie_image:
            raise ValidationError(MISSING_IMAGES)
        if self.adapter.requires_doc_type and not (request.doc_type or "").strip():
            raise ValidationError("docType is required for the configured provider")

    async def compress_images(self, request: VerificationRequest):
        target = self.config.compress_target_kb
        logger.info(
            f"Compressing images - original sizes ID: {len(request.id_image)} Selfie: {len(request.selfie_image)}"
        )
        try:
            # Pillow decode/encode is CPU-bound; keep it off the event loop
            id_image = await asyncio.to_thread(self.compressor, request.id_image, target)
            selfie_image = await asyncio.to_thread(self.compressor, request.selfie_image, target)
        except ValidationError:
            raise
        except Exception as e:
            raise ValidationError(f"Invalid image data: {str(e)}") from e

        logger.info(
            f"Compressed sizes - ID: {id_image.encoded_size_bytes} (q{id_image.quality_used}) "
            f"Selfie: {selfie_image.encoded_size_bytes} (q{selfie_image.quality_used})"
        )
        return id_image, selfie_image

    async def invoke_provider(self, id_image: CompressedImage, selfie_image: CompressedImage, doc_type: Optional[str]):
        try:
            return await asyncio.wait_for(
                self.adapter.execute(id_image, selfie_image, doc_type),
                timeout=self.config.verify_deadline,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Provider did not finish within {self.config.verify_deadline}s"
            ) from e

    async def verify(self, request: VerificationRequest) -> VerificationResult:
        request_id = f"{self.mode}_{uuid.uuid4().hex}"
        state = "received"
        try:
            self.validate(request)
            state = "validated"

            id_image, selfie_image = await self.compress_images(request)
            state = "compressed"

            doc_type = (request.doc_type or "").strip() or None
            raw = await self.invoke_provider(id_image, selfie_image, doc_type)
            state = "provider_invoked"
            logger.info(f"[{request_id}] Provider steps completed: {raw.steps}")

            result = normalize(raw.payload, request_id, self.adapter.mode_tag, self.adapter.field_map)
            state = "normalized"

            logger.info(
                f"[{request_id}] {result.status.value}: score={result.match_score} band={result.match_band.value}"
            )
            return result
        except GatewayError as e:
            logger.error(f"[{request_id}] Errored after {state}: {e.message}")
            if e.body is not None:
                logger.error(f"[{request_id}]   Response: {truncate(e.body)}")
            raise
