# services/providers/vision_provider.py
"""
Face comparison by a generative vision model (OpenAI-compatible chat API).

The model answers in prose; parse_vision_verdict turns that into a match flag
and score. The payload handed to the normalizer is that parsed verdict.
"""

import logging
from typing import Any, Dict, Optional

import requests

from config import ProviderConfig
from models.schemas import CompressedImage
from services.providers.base import ProviderHTTPClient, ProviderRawResult, to_base64, truncate
from services.providers.vision_parser import parse_vision_verdict
from services.result_normalizer import FieldMap

logger = logging.getLogger(__name__)

_PROMPT = (
    "You are a face verification assistant. "
    "The first image is an identity document, the second is a selfie.\n\n"
    "Compare the face on the document with the face in the selfie and decide "
    "whether they show the same person.\n\n"
    "Reply in this exact format:\n"
    "Match: Yes or No\n"
    "Confidence: <0-100>%\n"
    "Reason: <one short sentence>"
)

VISION_FIELD_MAP = FieldMap(
    containers=(),
    band_fields=(),
    matched_fields=("matched",),
    score_fields=("score",),
)


def _reply_text(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    if isinstance(content, list):
        # some servers return content parts
        content = " ".join(part.get("text", "") for part in content if isinstance(part, dict))
    return content if isinstance(content, str) else ""


class VisionProvider:
    mode_tag = "vision-inference"
    requires_doc_type = False
    field_map = VISION_FIELD_MAP

    def __init__(self, config: ProviderConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.http = ProviderHTTPClient(config, session)

    def build_payload(self, id_image: CompressedImage, selfie_image: CompressedImage) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{id_image.mime_type};base64,{to_base64(id_image)}"},
                        },
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{selfie_image.mime_type};base64,{to_base64(selfie_image)}"},
                        },
                        {"type": "text", "text": _PROMPT},
                    ],
                }
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": 0,
        }

    async def execute(
        self,
        id_image: CompressedImage,
        selfie_image: CompressedImage,
        doc_type: Optional[str],
    ) -> ProviderRawResult:
        self.http.check_credentials()

        response = await self.http.request(
            'POST',
            self.config.submit_url,
            step="vision_inference",
            json=self.build_payload(id_image, selfie_image),
            timeout=self.config.upload_timeout,
        )
        self.http.raise_for_status(response, "vision_inference")

        try:
            data = response.json()
        except ValueError:
            data = None
        text = _reply_text(data)
        if not text:
            logger.warning(f"Vision reply had no text content: {truncate(response.text)}")

        verdict = parse_vision_verdict(text)
        logger.info(f"Vision verdict: matched={verdict.matched} score={verdict.score}")

        return ProviderRawResult(
            payload={
                "matched": verdict.matched,
                "score": verdict.score,
                "analysis": text,
                "model": self.config.model,
            },
            steps=["vision_inference"],
            text=text,
        )
