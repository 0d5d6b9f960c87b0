# services/providers/multi_step_provider.py
"""
Stateful multi-call face match.

Flows:
  springscan_ocr:    create person -> upload selfie -> submit ID via OCR
                     (SpringScan matches the face as a side effect of OCR
                     once a selfie is already on the person)
  subject_documents: create subject -> submit both documents for the subject

Steps share one session dict. A failing step aborts the flow; earlier steps are
not rolled back, the vendor expires abandoned subjects on its own.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import requests

from config import ProviderConfig
from models.schemas import CompressedImage
from services.providers.base import ProviderHTTPClient, ProviderRawResult, to_base64
from services.result_normalizer import DEFAULT_FIELD_MAP, FieldMap
from utils.exceptions import ParseError, ProviderConfigError

logger = logging.getLogger(__name__)

Step = Callable[[Dict[str, Any]], Awaitable[None]]


class MultiStepProvider:
    requires_doc_type = True

    def __init__(
        self,
        config: ProviderConfig,
        session: Optional[requests.Session] = None,
        field_map: FieldMap = DEFAULT_FIELD_MAP,
    ):
        self.config = config
        self.http = ProviderHTTPClient(config, session)
        self.field_map = field_map

        flows = {
            "springscan_ocr": (
                "springscan-ocr-with-facematch",
                [
                    ("create_person", self._create_person),
                    ("upload_selfie", self._upload_selfie),
                    ("submit_ocr", self._submit_ocr),
                ],
            ),
            "subject_documents": (
                "subject-documents-facematch",
                [
                    ("create_subject", self._create_subject),
                    ("submit_documents", self._submit_documents),
                ],
            ),
        }
        if config.flow not in flows:
            raise ProviderConfigError(f"Unknown multi-step flow '{config.flow}'")

        self.mode_tag: str = flows[config.flow][0]
        self.steps: List[Tuple[str, Step]] = flows[config.flow][1]
        # A configured default document type makes the hint optional
        self.requires_doc_type = not config.default_doc_type

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    async def _post(self, step: str, path: str, **kwargs) -> Dict[str, Any]:
        response = await self.http.request('POST', self._url(path), step=step, **kwargs)
        self.http.raise_for_status(response, step)
        return self.http.json_object(response, step)

    # ==================== SPRINGSCAN OCR FLOW ====================

    async def _create_person(self, state: Dict[str, Any]) -> None:
        """Step 1: create a person; required before any upload."""
        data = await self._post(
            "create_person",
            "/user/person",
            data={"first_name": "FaceMatch", "last_name": str(int(time.time() * 1000))},
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
        )
        person_id = data.get("_id")
        if not person_id:
            raise ParseError("Provider did not return a person id", body=data, step="create_person")
        state["subject_id"] = person_id
        logger.info(f"Created person with ID: {person_id}")

    async def _upload_selfie(self, state: Dict[str, Any]) -> None:
        """Step 2: attach the selfie to the person, before OCR."""
        await self._post(
            "upload_selfie",
            f"/user/person/{state['subject_id']}/selfie",
            json={"selfieurl": to_base64(state["selfie_image"])},
            timeout=self.config.upload_timeout,
        )
        logger.info("Selfie uploaded successfully")

    async def _submit_ocr(self, state: Dict[str, Any]) -> None:
        """Step 3: OCR the ID; the reply carries faceMatched / matchResult."""
        state["result"] = await self._post(
            "submit_ocr",
            "/v4/ocr",
            json={
                "personId": state["subject_id"],
                "docType": state["doc_type"],
                "document_front": to_base64(state["id_image"]),
                "document_back": None,
                "success_parameters": ["id_number"],
            },
            timeout=self.config.upload_timeout,
        )

    # ==================== SUBJECT + DOCUMENTS FLOW ====================

    async def _create_subject(self, state: Dict[str, Any]) -> None:
        data = await self._post(
            "create_subject",
            "/subjects",
            json={"reference": f"facematch-{int(time.time() * 1000)}"},
        )
        subject_id = data.get("id") or data.get("_id") or data.get("subject_id")
        if not subject_id:
            raise ParseError("Provider did not return a subject id", body=data, step="create_subject")
        state["subject_id"] = subject_id
        logger.info(f"Created subject with ID: {subject_id}")

    async def _submit_documents(self, state: Dict[str, Any]) -> None:
        state["result"] = await self._post(
            "submit_documents",
            f"/subjects/{state['subject_id']}/documents",
            json={
                "docType": state["doc_type"],
                "document": to_base64(state["id_image"]),
                "selfie": to_base64(state["selfie_image"]),
            },
            timeout=self.config.upload_timeout,
        )

    async def execute(
        self,
        id_image: CompressedImage,
        selfie_image: CompressedImage,
        doc_type: Optional[str],
    ) -> ProviderRawResult:
        self.http.check_credentials()

        state: Dict[str, Any] = {
            "id_image": id_image,
            "selfie_image": selfie_image,
            "doc_type": doc_type or self.config.default_doc_type,
        }
        completed: List[str] = []

        for index, (name, step) in enumerate(self.steps, start=1):
            logger.info(f"Step {index}/{len(self.steps)}: {name}")
            try:
                await step(state)
            except Exception:
                logger.error(f"Step {name} failed after {completed or 'no'} completed steps")
                raise
            completed.append(name)

        payload = dict(state["result"])
        payload.setdefault("person_id", state["subject_id"])
        return ProviderRawResult(payload=payload, steps=completed)
