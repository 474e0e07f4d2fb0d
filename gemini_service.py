import logging

import requests
from google import genai
from google.genai import types
from google.genai.types import Modality

from errors import MissingPayloadError
from media import decode_data_url, to_data_url
from models import (
    ImageEditRequest,
    ImageRequest,
    Source,
    SpeechRequest,
    TextRequest,
    TextResult,
    VideoHandle,
    VideoRequest,
)
from video_workflow import POLL_INTERVAL, VideoGeneration

logger = logging.getLogger(__name__)

TEXT_MODEL = "gemini-3-flash-preview"
THINKING_MODEL = "gemini-3-pro-preview"
IMAGE_MODEL = "gemini-3-pro-image-preview"
IMAGE_EDIT_MODEL = "gemini-2.5-flash-image"
VIDEO_MODEL = "veo-3.1-fast-generate-preview"
TTS_MODEL = "gemini-2.5-flash-preview-tts"

TTS_VOICE = "Kore"
TEMPERATURE = 0.7
THINKING_BUDGET = 32768


class GeminiService:
    """One call per capability against the Gemini API. No retries, no caching."""

    def __init__(self, api_key="", client=None, http_timeout_ms=300_000,
                 poll_interval=POLL_INTERVAL, fetch_timeout=120, session=None, wait=None):
        self._api_key = api_key
        self._client = client
        self._http_timeout_ms = http_timeout_ms
        self.poll_interval = poll_interval
        self.fetch_timeout = fetch_timeout
        self._session = session or requests.Session()
        self._wait = wait

    @property
    def api_key(self):
        return self._api_key

    def set_api_key(self, api_key):
        self._api_key = api_key
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=self._http_timeout_ms),
            )
        return self._client

    # ── Text ──

    def generate_text(self, prompt, use_thinking=False, use_search=False, image=None):
        request = TextRequest(
            prompt=prompt, use_thinking=use_thinking, use_search=use_search, image=image,
        )
        model = THINKING_MODEL if request.use_thinking else TEXT_MODEL

        parts = []
        if request.image:
            data, mime = decode_data_url(request.image, default_mime="image/jpeg")
            parts.append(types.Part.from_bytes(data=data, mime_type=mime))
        parts.append(types.Part.from_text(text=request.prompt))

        kwargs = {"temperature": TEMPERATURE}
        if request.use_thinking:
            kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=THINKING_BUDGET)
        if request.use_search:
            kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]

        logger.info("generate_text model=%s search=%s image=%s",
                    model, request.use_search, bool(request.image))
        response = self.client.models.generate_content(
            model=model, contents=parts, config=types.GenerateContentConfig(**kwargs),
        )
        return TextResult(text=response.text or "", sources=extract_sources(response))

    # ── Images ──

    def generate_image(self, prompt, aspect_ratio="16:9", image_size="1K"):
        """Returns a data URL, or "" when the model sent back no image."""
        request = ImageRequest(prompt=prompt, aspect_ratio=aspect_ratio, image_size=image_size)
        config = types.GenerateContentConfig(
            image_config=types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            ),
        )
        logger.info("generate_image aspect=%s size=%s", request.aspect_ratio, request.image_size)
        response = self.client.models.generate_content(
            model=IMAGE_MODEL, contents=request.prompt, config=config,
        )
        return _image_data_url(response)

    def edit_image(self, source_image, prompt):
        """Same contract as generate_image, seeded with an existing picture."""
        request = ImageEditRequest(source_image=source_image, prompt=prompt)
        data, mime = decode_data_url(request.source_image)
        contents = [
            types.Part.from_bytes(data=data, mime_type=mime),
            types.Part.from_text(text=request.prompt),
        ]
        logger.info("edit_image source=%s (%d bytes)", mime, len(data))
        response = self.client.models.generate_content(
            model=IMAGE_EDIT_MODEL, contents=contents,
        )
        return _image_data_url(response)

    # ── Video ──

    def video_job(self, prompt, aspect_ratio="16:9", resolution="1080p", image=None):
        request = VideoRequest(
            prompt=prompt, aspect_ratio=aspect_ratio, resolution=resolution, image=image,
        )
        kwargs = {
            "model": VIDEO_MODEL,
            "prompt": request.prompt or None,
            "config": types.GenerateVideosConfig(
                number_of_videos=1,
                resolution=request.resolution,
                aspect_ratio=request.aspect_ratio,
            ),
        }
        if request.image:
            data, mime = decode_data_url(request.image)
            kwargs["image"] = types.Image(image_bytes=data, mime_type=mime)

        def submit():
            logger.info("generate_videos aspect=%s resolution=%s seed_image=%s",
                        request.aspect_ratio, request.resolution, bool(request.image))
            return self.client.models.generate_videos(**kwargs)

        return VideoGeneration(
            submit=submit,
            refresh=lambda operation: self.client.operations.get(operation),
            fetch=self.fetch_video,
            poll_interval=self.poll_interval,
            wait=self._wait,
        )

    def generate_video(self, prompt, aspect_ratio="16:9", resolution="1080p", image=None):
        return self.video_job(prompt, aspect_ratio, resolution, image).run()

    def fetch_video(self, uri):
        response = self._session.get(uri, params={"key": self._api_key}, timeout=self.fetch_timeout)
        response.raise_for_status()
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        mime = content_type if content_type.startswith("video/") else "video/mp4"
        return VideoHandle(data=response.content, mime_type=mime)

    # ── Speech ──

    def text_to_speech(self, text):
        """Returns raw PCM16 audio (24 kHz, mono, little-endian)."""
        request = SpeechRequest(text=text)
        config = types.GenerateContentConfig(
            response_modalities=[Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=TTS_VOICE),
                ),
            ),
        )
        response = self.client.models.generate_content(
            model=TTS_MODEL, contents=request.text, config=config,
        )
        blob = first_inline_data(response)
        if blob is None:
            raise MissingPayloadError("Audio generation failed")
        return blob.data


def first_inline_data(response):
    candidates = response.candidates or []
    if not candidates or candidates[0].content is None:
        return None
    for part in candidates[0].content.parts or []:
        if part.inline_data is not None and part.inline_data.data:
            return part.inline_data
    return None


def extract_sources(response):
    """Web citations from grounding metadata, deduplicated by URI."""
    candidates = response.candidates or []
    if not candidates or candidates[0].grounding_metadata is None:
        return []

    sources = []
    seen = set()
    for chunk in candidates[0].grounding_metadata.grounding_chunks or []:
        web = chunk.web
        if web is None or not web.uri or web.uri in seen:
            continue
        seen.add(web.uri)
        sources.append(Source(title=web.title or "Source", uri=web.uri))
    return sources


def _image_data_url(response):
    blob = first_inline_data(response)
    if blob is None:
        return ""
    return to_data_url(blob.data, blob.mime_type or "image/png")
