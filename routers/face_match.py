# routers/face_match.py
from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
from typing import Any, Dict, Optional
from config import settings
from models.schemas import FaceMatchResponse, VerificationRequest
from services.verification_gateway import VerificationGateway
from utils.exceptions import ValidationError
from utils.image_payload import decode_image
import json
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Face Match"])


def get_gateway(request: Request) -> VerificationGateway:
    return request.app.state.gateway


def _check_size(data: Optional[bytes], field: str) -> Optional[bytes]:
    if data is not None and len(data) > settings.MAX_FILE_SIZE:
        raise ValidationError(f"{field} exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)}MB limit")
    return data


async def _form_image(value: Any, field: str) -> Optional[bytes]:
    if isinstance(value, UploadFile):
        return _check_size(await value.read() or None, field)
    return _check_size(decode_image(value, field), field)


async def _read_request(request: Request) -> VerificationRequest:
    """Accept multipart/form fields or a JSON body with base64 / data-URI images."""
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        return VerificationRequest(
            id_image=await _form_image(form.get("idImage"), "idImage"),
            selfie_image=await _form_image(form.get("selfieImage"), "selfieImage"),
            doc_type=form.get("docType") or None,
        )

    raw = await request.body()
    body: Dict[str, Any] = {}
    if raw:
        try:
            body = json.loads(raw)
        except ValueError:
            raise ValidationError("Request body must be JSON or multipart/form-data")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    doc_type = body.get("docType")
    return VerificationRequest(
        id_image=_check_size(decode_image(body.get("idImage"), "idImage"), "idImage"),
        selfie_image=_check_size(decode_image(body.get("selfieImage"), "selfieImage"), "selfieImage"),
        doc_type=doc_type if isinstance(doc_type, str) else None,
    )


@router.post("/face-match", response_model=FaceMatchResponse)
async def face_match(
    request: Request,
    gateway: VerificationGateway = Depends(get_gateway),
):
    """Compare the face on an ID document with a selfie via the configured provider"""
    verification_request = await _read_request(request)
    result = await gateway.verify(verification_request)
    return FaceMatchResponse(data=result)
