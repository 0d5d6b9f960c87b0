"""Tests for mapping raw provider payloads to the canonical result."""

from datetime import datetime, timezone

import pytest

from models.schemas import ConfidenceLevel, MatchBand, VerificationStatus
from services.result_normalizer import FieldMap, normalize

FIXED_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_sync_payload_with_green_band():
    result = normalize({"match_score": "91.0", "match_band": "green"}, "req-1", "sync-facematch")

    assert result.match_score == 91
    assert result.match_band == MatchBand.HIGH
    assert result.status == VerificationStatus.VERIFIED
    assert result.confidence_level == ConfidenceLevel.HIGH
    assert result.face_matched is True
    assert result.request_id == "req-1"
    assert result.provider_mode == "sync-facematch"


@pytest.mark.parametrize(
    "score, band, status, confidence",
    [
        (85, MatchBand.HIGH, VerificationStatus.VERIFIED, ConfidenceLevel.HIGH),
        (84.9, MatchBand.MEDIUM, VerificationStatus.VERIFIED, ConfidenceLevel.MEDIUM),
        (70, MatchBand.MEDIUM, VerificationStatus.VERIFIED, ConfidenceLevel.MEDIUM),
        (69.9, MatchBand.LOW, VerificationStatus.REVIEW, ConfidenceLevel.LOW),
        (50, MatchBand.LOW, VerificationStatus.REVIEW, ConfidenceLevel.LOW),
        (49.9, MatchBand.LOW, VerificationStatus.FAILED, ConfidenceLevel.LOW),
    ],
)
def test_threshold_cut_points(score, band, status, confidence):
    result = normalize({"score": score}, "req", "sync")

    assert result.match_band == band
    assert result.status == status
    assert result.confidence_level == confidence


def test_scores_are_clamped():
    assert normalize({"score": 140}, "r", "m").match_score == 100
    assert normalize({"score": "-3"}, "r", "m").match_score == 0


def test_empty_payload_defaults_to_gray_zero():
    result = normalize({}, "req", "sync")

    assert result.match_score == 0
    assert result.match_band == MatchBand.GRAY
    assert result.status == VerificationStatus.FAILED
    assert result.confidence_level == ConfidenceLevel.LOW
    assert result.face_matched is False


def test_unknown_provider_band_is_gray_and_never_verified():
    result = normalize({"match_band": "purple", "score": 92}, "req", "sync")

    assert result.match_band == MatchBand.GRAY
    assert result.confidence_level == ConfidenceLevel.LOW
    assert result.status == VerificationStatus.REVIEW


def test_provider_band_wins_over_score_band():
    result = normalize({"match_band": "red", "score": 90}, "req", "sync")

    assert result.match_band == MatchBand.LOW
    assert result.confidence_level == ConfidenceLevel.LOW
    assert result.status == VerificationStatus.REVIEW
    assert result.face_matched is False


def test_low_provider_band_below_review_threshold_fails():
    result = normalize({"match_band": "weak", "score": 40}, "req", "sync")

    assert result.status == VerificationStatus.FAILED


def test_recognised_band_without_score_decides_status():
    result = normalize({"match_band": "green"}, "req", "sync")

    assert result.match_band == MatchBand.HIGH
    assert result.confidence_level == ConfidenceLevel.HIGH
    assert result.status == VerificationStatus.VERIFIED
    assert result.face_matched is True
    assert result.match_score == 0


@pytest.mark.parametrize(
    "raw, status",
    [
        ({"match_band": "amber"}, VerificationStatus.VERIFIED),
        ({"match_band": "green", "faceMatched": False}, VerificationStatus.REVIEW),
        ({"match_band": "red"}, VerificationStatus.FAILED),
        ({"match_band": "purple"}, VerificationStatus.FAILED),
    ],
)
def test_band_only_payloads(raw, status):
    assert normalize(raw, "req", "sync").status == status


def test_explicit_no_match_blocks_verified():
    result = normalize({"faceMatched": False, "score": 95}, "req", "multi")

    assert result.face_matched is False
    assert result.status == VerificationStatus.REVIEW


def test_nested_match_result_takes_precedence():
    raw = {
        "faceMatched": True,
        "confidence": 12,
        "matchResult": {"confidence": 88},
    }

    result = normalize(raw, "req", "springscan-ocr-with-facematch")

    assert result.match_score == 88
    assert result.face_matched is True
    assert result.match_band == MatchBand.HIGH


def test_custom_field_map():
    field_map = FieldMap(containers=("data",), score_fields=("similarity_pct",), matched_fields=("same_person",))
    raw = {"data": {"similarity_pct": 76, "same_person": "yes"}, "score": 3}

    result = normalize(raw, "req", "custom", field_map)

    assert result.match_score == 76
    assert result.face_matched is True
    assert result.status == VerificationStatus.VERIFIED


def test_face_and_liveness_defaults():
    result = normalize({"score": 80}, "req", "sync")

    assert result.face1.detected is True
    assert result.face1.quality == "unknown"
    assert result.face2.quality == "unknown"
    assert result.liveness_info.status == "N/A"
    assert result.liveness_info.confidence == 0


def test_face_and_liveness_from_payload():
    raw = {
        "score": 80,
        "face_1": {"detected": False, "quality": "POOR"},
        "liveness": {"status": "LIVE", "confidence": "97"},
    }

    result = normalize(raw, "req", "sync")

    assert result.face1.detected is False
    assert result.face1.quality == "POOR"
    assert result.face2.detected is True
    assert result.liveness_info.status == "LIVE"
    assert result.liveness_info.confidence == 97


def test_normalize_is_deterministic():
    raw = {"match_score": "73.5", "isMatch": True}

    first = normalize(raw, "req", "sync", processed_at=FIXED_TIME)
    second = normalize(raw, "req", "sync", processed_at=FIXED_TIME)

    assert first == second
    assert first.raw_response == raw


def test_serializes_with_camel_case_keys():
    data = normalize({"score": 91}, "req", "sync").model_dump(by_alias=True)

    for key in ("requestId", "matchScore", "matchBand", "confidenceLevel", "faceMatched",
                "livenessInfo", "processedAt", "providerMode", "rawResponse"):
        assert key in data
