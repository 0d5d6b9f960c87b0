"""Tests for the vision-model adapter and its free-text parser."""

import asyncio

import pytest

from conftest import FakeResponse, FakeSession, compressed
from services.providers.vision_parser import parse_vision_verdict
from services.providers.vision_provider import VisionProvider
from utils.exceptions import ProviderHTTPError


def test_parses_affirmative_with_confidence():
    assert parse_vision_verdict("Match: Yes, Confidence: 92%") == (True, 92)


def test_parses_negative_with_fractional_score():
    verdict = parse_vision_verdict("No match found, score: 0.15")

    assert verdict.matched is False
    assert verdict.score == pytest.approx(15)


def test_unparsable_text_is_safe_default():
    assert parse_vision_verdict("unclear") == (False, 0)
    assert parse_vision_verdict("") == (False, 0)
    assert parse_vision_verdict(None) == (False, 0)


def test_confidence_token_beats_score_and_percent():
    verdict = parse_vision_verdict("Similarity 40%. Score: 55. Confidence: 81")

    assert verdict.score == 81


def test_score_above_one_is_not_scaled():
    assert parse_vision_verdict("Match: yes. Score: 78").score == 78


def test_bare_percentage_is_used_last():
    verdict = parse_vision_verdict("The faces look alike, roughly 83% similar.")

    assert verdict == (True, 83)


def test_high_score_with_negation_is_not_inferred_match():
    verdict = parse_vision_verdict("I am not certain, 90% of the features are hidden.")

    assert verdict.matched is False


def test_negative_cue_beats_affirmative_cue():
    verdict = parse_vision_verdict("Match: yes? No, these are different people. Confidence: 88%")

    assert verdict.matched is False
    assert verdict.score == 88


def test_does_not_match_is_negative():
    assert parse_vision_verdict("The selfie does not match the ID, confidence 30").matched is False


def _chat_reply(content):
    return FakeResponse(200, {"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_vision_provider_sends_two_images_and_instruction(vision_config, id_image, selfie_image):
    session = FakeSession([_chat_reply("Match: Yes\nConfidence: 90%\nReason: same person")])
    provider = VisionProvider(vision_config, session=session)

    raw = asyncio.run(provider.execute(id_image, selfie_image, None))

    call = session.calls[0]
    parts = call["json"]["messages"][0]["content"]
    assert [p["type"] for p in parts] == ["image_url", "image_url", "text"]
    assert parts[0]["image_url"]["url"].startswith("data:image/jpeg;base64,")
    assert call["json"]["model"] == "gpt-4o"
    assert call["headers"]["Authorization"] == "Bearer sk-test"
    assert raw.payload["matched"] is True
    assert raw.payload["score"] == 90


def test_vision_provider_labels_kept_png_with_its_mime_type(vision_config, selfie_image):
    png = compressed(b"png-bytes").model_copy(update={"kept_original": True, "mime_type": "image/png"})
    session = FakeSession([_chat_reply("Match: No\nConfidence: 10%")])

    asyncio.run(VisionProvider(vision_config, session=session).execute(png, selfie_image, None))

    parts = session.calls[0]["json"]["messages"][0]["content"]
    assert parts[0]["image_url"]["url"].startswith("data:image/png;base64,")
    assert parts[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")


def test_vision_provider_degrades_on_unexpected_shape(vision_config, id_image, selfie_image):
    session = FakeSession([FakeResponse(200, {"unexpected": "shape"})])

    raw = asyncio.run(VisionProvider(vision_config, session=session).execute(id_image, selfie_image, None))

    assert raw.payload["matched"] is False
    assert raw.payload["score"] == 0


def test_vision_provider_surfaces_http_errors(vision_config, id_image, selfie_image):
    session = FakeSession([FakeResponse(429, {"error": {"message": "rate limited"}})])

    with pytest.raises(ProviderHTTPError) as exc_info:
        asyncio.run(VisionProvider(vision_config, session=session).execute(id_image, selfie_image, None))

    assert exc_info.value.status_code == 429
