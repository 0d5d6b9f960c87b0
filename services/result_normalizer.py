# services/result_normalizer.py
"""
Maps raw provider payloads onto the canonical VerificationResult.

Vendors disagree on field names, so each adapter ships a FieldMap naming where
its band, match flag and score live. Banding thresholds are fixed policy:
85 / 70 for bands, 70 / 50 for status.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from models.schemas import (
    ConfidenceLevel,
    FaceInfo,
    LivenessInfo,
    MatchBand,
    VerificationResult,
    VerificationStatus,
)

logger = logging.getLogger(__name__)

HIGH_THRESHOLD = 85.0
MATCH_THRESHOLD = 70.0
REVIEW_THRESHOLD = 50.0

_BAND_ALIASES = {
    "high": MatchBand.HIGH,
    "green": MatchBand.HIGH,
    "strong": MatchBand.HIGH,
    "medium": MatchBand.MEDIUM,
    "amber": MatchBand.MEDIUM,
    "yellow": MatchBand.MEDIUM,
    "moderate": MatchBand.MEDIUM,
    "low": MatchBand.LOW,
    "red": MatchBand.LOW,
    "weak": MatchBand.LOW,
}


@dataclass(frozen=True)
class FieldMap:
    """Where to look for each canonical field in a raw payload (first hit wins)."""

    containers: Tuple[str, ...] = ("matchResult", "matchedInformation", "result")
    band_fields: Tuple[str, ...] = ("match_band", "matchBand", "band")
    matched_fields: Tuple[str, ...] = ("faceMatched", "face_matched", "isMatch", "is_match", "matched")
    score_fields: Tuple[str, ...] = (
        "confidence",
        "score",
        "match_score",
        "matchScore",
        "confidenceScore",
        "similarity",
    )
    liveness_field: str = "liveness"
    face_fields: Tuple[str, str] = ("face_1", "face_2")


DEFAULT_FIELD_MAP = FieldMap()


def _lookup(
    raw: Dict[str, Any],
    fields: Tuple[str, ...],
    containers: Tuple[str, ...],
    convert: Callable[[Any], Any] = lambda value: value,
) -> Any:
    # nested vendor result objects take precedence over top-level keys
    scopes = [raw[c] for c in containers if isinstance(raw.get(c), dict)]
    scopes.append(raw)
    for scope in scopes:
        for name in fields:
            value = scope.get(name)
            if value is None or value == "":
                continue
            converted = convert(value)
            if converted is not None:
                return converted
    return None


def _to_score(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score:  # NaN
        return None
    return max(0.0, min(100.0, score))


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1", "match", "matched"):
            return True
        if lowered in ("false", "no", "0", "no_match", "not_matched"):
            return False
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    return None


def band_for_score(score: float) -> MatchBand:
    if score >= HIGH_THRESHOLD:
        return MatchBand.HIGH
    if score >= MATCH_THRESHOLD:
        return MatchBand.MEDIUM
    return MatchBand.LOW


def provider_band(value: Any) -> MatchBand:
    """Translate a vendor's qualitative label. Unknown labels become GRAY."""
    if isinstance(value, str):
        return _BAND_ALIASES.get(value.strip().lower(), MatchBand.GRAY)
    return MatchBand.GRAY


def confidence_for_band(band: MatchBand) -> ConfidenceLevel:
    if band == MatchBand.HIGH:
        return ConfidenceLevel.HIGH
    if band == MatchBand.MEDIUM:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


PASSING_BANDS = (MatchBand.HIGH, MatchBand.MEDIUM)


def status_for(score: Optional[float], matched: Optional[bool], band: MatchBand) -> VerificationStatus:
    """
    Status never contradicts the band: LOW and GRAY are at most REVIEW.
    With no score at all, a recognised band decides on its own.
    """
    if score is None:
        if band in PASSING_BANDS:
            return VerificationStatus.VERIFIED if matched is not False else VerificationStatus.REVIEW
        return VerificationStatus.FAILED

    if matched is not False and score >= MATCH_THRESHOLD and band in PASSING_BANDS:
        return VerificationStatus.VERIFIED
    if score >= REVIEW_THRESHOLD:
        return VerificationStatus.REVIEW
    return VerificationStatus.FAILED


def _face(raw: Dict[str, Any], key: str) -> FaceInfo:
    data = raw.get(key)
    if not isinstance(data, dict):
        return FaceInfo()
    detected = data.get("detected")
    quality = data.get("quality")
    return FaceInfo(
        detected=detected if isinstance(detected, bool) else True,
        quality=str(quality) if quality else "unknown",
    )


def _liveness(raw: Dict[str, Any], key: str) -> LivenessInfo:
    data = raw.get(key)
    if not isinstance(data, dict):
        return LivenessInfo()
    return LivenessInfo(
        status=str(data.get("status") or "N/A"),
        confidence=_to_score(data.get("confidence")) or 0,
    )


def normalize(
    raw: Dict[str, Any],
    request_id: str,
    provider_mode: str,
    field_map: FieldMap = DEFAULT_FIELD_MAP,
    processed_at: Optional[datetime] = None,
) -> VerificationResult:
    """
    Build the canonical result from a provider payload.

    Priority: provider band > provider match flag + score > score alone >
    default (score 0, band GRAY).
    """
    if not isinstance(raw, dict):
        raw = {}

    band_value = _lookup(raw, field_map.band_fields, field_map.containers)
    matched = _lookup(raw, field_map.matched_fields, field_map.containers, _to_bool)
    score = _lookup(raw, field_map.score_fields, field_map.containers, _to_score)

    if band_value is not None:
        band = provider_band(band_value)
    elif score is not None:
        band = band_for_score(score)
    else:
        band = MatchBand.GRAY

    status = status_for(score, matched, band)

    if matched is not None:
        face_matched = matched
    elif score is not None:
        face_matched = score >= MATCH_THRESHOLD and band in PASSING_BANDS
    else:
        face_matched = band in PASSING_BANDS

    if score is None:
        score = 0.0

    logger.debug(
        f"Normalized {provider_mode} result {request_id}: score={score} band={band.value} "
        f"matched={matched} status={status.value}"
    )

    return VerificationResult(
        request_id=request_id,
        match_score=score,
        match_band=band,
        status=status,
        confidence_level=confidence_for_band(band),
        face_matched=face_matched,
        face1=_face(raw, field_map.face_fields[0]),
        face2=_face(raw, field_map.face_fields[1]),
        liveness_info=_liveness(raw, field_map.liveness_field),
        processed_at=processed_at or datetime.now(timezone.utc),
        provider_mode=provider_mode,
        raw_response=raw,
    )
