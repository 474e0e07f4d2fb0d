import base64

import pytest
from pydantic import ValidationError

from conftest import blob_response, operation, png_data_url, text_response
from errors import MissingPayloadError
from gemini_service import (
    IMAGE_EDIT_MODEL,
    IMAGE_MODEL,
    TEXT_MODEL,
    THINKING_BUDGET,
    THINKING_MODEL,
    TTS_MODEL,
    VIDEO_MODEL,
    extract_sources,
)


def test_generate_text_uses_fast_model_by_default(service, client):
    client.models.responses.append(text_response("Hello there"))

    result = service.generate_text("Hi")

    call = client.models.calls[0]
    assert call["model"] == TEXT_MODEL
    assert call["config"].temperature == 0.7
    assert call["config"].thinking_config is None
    assert not call["config"].tools
    assert result.text == "Hello there"
    assert result.sources == []


def test_thinking_and_search_compose(service, client):
    client.models.responses.append(text_response("Deep answer", web_chunks=[]))

    service.generate_text("Explain", use_thinking=True, use_search=True)

    call = client.models.calls[0]
    assert call["model"] == THINKING_MODEL
    assert call["config"].thinking_config.thinking_budget == THINKING_BUDGET
    assert call["config"].tools[0].google_search is not None


def test_sources_drop_missing_uris_and_duplicates(service, client):
    client.models.responses.append(text_response("News", web_chunks=[
        ("Reuters", "https://reuters.example/a"),
        (None, "https://untitled.example/b"),
        ("No link", None),
        ("Reuters again", "https://reuters.example/a"),
    ]))

    result = service.generate_text("Summarize global news", use_search=True)

    assert [(s.title, s.uri) for s in result.sources] == [
        ("Reuters", "https://reuters.example/a"),
        ("Source", "https://untitled.example/b"),
    ]


def test_extract_sources_without_candidates():
    from google.genai import types

    assert extract_sources(types.GenerateContentResponse(candidates=[])) == []


def test_attached_image_is_sent_before_prompt(service, client):
    client.models.responses.append(text_response("A white square"))

    service.generate_text("What is this?", image=png_data_url())

    parts = client.models.calls[0]["contents"]
    assert parts[0].inline_data.mime_type == "image/png"
    assert parts[0].inline_data.data.startswith(b"\x89PNG")
    assert parts[1].text == "What is this?"


def test_remote_errors_propagate(service, client):
    client.models.error = RuntimeError("quota exceeded")
    with pytest.raises(RuntimeError, match="quota"):
        service.generate_text("Hi")


def test_generate_image_returns_data_url(service, client):
    client.models.responses.append(blob_response(b"png-bytes", "image/png", text="Here you go"))

    url = service.generate_image("a fox", aspect_ratio="1:1", image_size="2K")

    call = client.models.calls[0]
    assert call["model"] == IMAGE_MODEL
    assert call["config"].image_config.aspect_ratio == "1:1"
    assert call["config"].image_config.image_size == "2K"
    assert url == "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()


def test_generate_image_without_image_part_returns_empty(service, client):
    client.models.responses.append(text_response("I cannot draw that"))
    assert service.generate_image("a fox") == ""


def test_generate_image_rejects_unknown_aspect_ratio(service, client):
    with pytest.raises(ValidationError):
        service.generate_image("a fox", aspect_ratio="5:4")
    assert client.models.calls == []


def test_edit_image_sends_source_then_instruction(service, client):
    client.models.responses.append(blob_response(b"edited", "image/jpeg"))

    url = service.edit_image(png_data_url(), "make it blue")

    call = client.models.calls[0]
    assert call["model"] == IMAGE_EDIT_MODEL
    assert call["contents"][0].inline_data.mime_type == "image/png"
    assert call["contents"][1].text == "make it blue"
    assert url.startswith("data:image/jpeg;base64,")


def test_edit_image_without_image_part_returns_empty(service, client):
    client.models.responses.append(text_response("no"))
    assert service.edit_image(png_data_url(), "make it blue") == ""


def test_text_to_speech_returns_pcm(service, client):
    client.models.responses.append(blob_response(b"\x01\x00\xff\x7f", "audio/L16;rate=24000"))

    pcm = service.text_to_speech("Hello")

    call = client.models.calls[0]
    assert call["model"] == TTS_MODEL
    voice = call["config"].speech_config.voice_config.prebuilt_voice_config.voice_name
    assert voice == "Kore"
    assert pcm == b"\x01\x00\xff\x7f"


def test_text_to_speech_without_audio_raises(service, client):
    client.models.responses.append(text_response("no audio"))
    with pytest.raises(MissingPayloadError):
        service.text_to_speech("Hello")


def test_generate_video_polls_then_fetches_with_key(service, client, session):
    client.models.operations.extend([
        operation(done=False),
        operation(done=False),
        operation(done=True, uri="https://media.example/v1/files/abc:download?alt=media"),
    ])

    handle = service.generate_video("neon city", aspect_ratio="9:16", resolution="720p",
                                    image=png_data_url())

    call = client.models.video_calls[0]
    assert call["model"] == VIDEO_MODEL
    assert call["config"].number_of_videos == 1
    assert call["config"].resolution == "720p"
    assert call["config"].aspect_ratio == "9:16"
    assert call["image"].mime_type == "image/png"
    assert client.operations.refreshed == 2
    assert session.requests[0]["url"] == "https://media.example/v1/files/abc:download?alt=media"
    assert session.requests[0]["params"] == {"key": "test-key"}
    assert handle.mime_type == "video/mp4"
    assert handle.data == session.response.content


def test_fetch_video_falls_back_to_mp4_mime(service, session):
    session.response.headers["Content-Type"] = "application/octet-stream"
    assert service.fetch_video("https://media.example/x").mime_type == "video/mp4"


def test_set_api_key_drops_cached_client(service):
    service.set_api_key("other")
    assert service.api_key == "other"
    assert service._client is None
