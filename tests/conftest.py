import base64
import io
from types import SimpleNamespace

import pytest
from google.genai import types
from PIL import Image

from gemini_service import GeminiService


def text_response(text, web_chunks=None):
    metadata = None
    if web_chunks is not None:
        metadata = types.GroundingMetadata(
            grounding_chunks=[
                types.GroundingChunk(web=types.GroundingChunkWeb(title=title, uri=uri))
                for title, uri in web_chunks
            ]
        )
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=[types.Part(text=text)]),
                grounding_metadata=metadata,
            )
        ]
    )


def blob_response(data, mime_type="image/png", text=None):
    parts = []
    if text:
        parts.append(types.Part(text=text))
    parts.append(types.Part(inline_data=types.Blob(data=data, mime_type=mime_type)))
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=parts))]
    )


def operation(done, uri=None, error=None):
    response = None
    if uri:
        response = SimpleNamespace(generated_videos=[SimpleNamespace(video=SimpleNamespace(uri=uri))])
    return SimpleNamespace(name="operations/veo-1", done=done, response=response, error=error)


def png_data_url(size=(4, 4)):
    buf = io.BytesIO()
    Image.new("RGB", size, "white").save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("utf-8")


class FakeModels:
    def __init__(self):
        self.calls = []
        self.video_calls = []
        self.responses = []
        self.error = None
        self.video_error = None
        self.operations = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.responses.pop(0)

    def generate_videos(self, **kwargs):
        self.video_calls.append(kwargs)
        if self.video_error:
            raise self.video_error
        return self.operations.pop(0)


class FakeOperations:
    def __init__(self, models):
        self._models = models
        self.refreshed = 0

    def get(self, op):
        self.refreshed += 1
        return self._models.operations.pop(0)


class FakeClient:
    def __init__(self):
        self.models = FakeModels()
        self.operations = FakeOperations(self.models)


class FakeHttpResponse:
    def __init__(self, content, status_code=200, content_type="video/mp4"):
        self.content = content
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")


class FakeSession:
    def __init__(self):
        self.requests = []
        self.response = FakeHttpResponse(b"\x00\x00\x00\x18ftypmp42")

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        return self.response


class FakeTicker:
    """Stands in for StatusTicker so view tests never start timer threads."""

    instances = []

    def __init__(self, phrases, on_tick, interval=8.0):
        self.phrases = phrases
        self.on_tick = on_tick
        self.interval = interval
        self.started = False
        self.stopped = False
        FakeTicker.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def service(client, session):
    return GeminiService(
        api_key="test-key",
        client=client,
        session=session,
        poll_interval=0,
        wait=lambda seconds: False,
    )
