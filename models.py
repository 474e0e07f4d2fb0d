import time
import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9", "21:9", "2:3", "3:2"]
ImageSize = Literal["1K", "2K", "4K"]
VideoResolution = Literal["720p", "1080p"]

ASPECT_RATIOS = ["1:1", "3:4", "4:3", "9:16", "16:9", "21:9", "2:3", "3:2"]
IMAGE_SIZES = ["1K", "2K", "4K"]
VIDEO_RESOLUTIONS = ["720p", "1080p"]


def _now_ms():
    return int(time.time() * 1000)


class GenerationSettings(BaseModel):
    """Snapshot of the generation knobs shared by every view."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    aspect_ratio: AspectRatio = "16:9"
    image_size: ImageSize = "1K"
    video_resolution: VideoResolution = "1080p"
    use_thinking: bool = False
    use_search: bool = True


class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    uri: str


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant"]
    text: str
    image: Optional[str] = None
    sources: List[Source] = Field(default_factory=list)
    timestamp: int = Field(default_factory=_now_ms)
    is_thinking: bool = False


class TextResult(BaseModel):
    text: str
    sources: List[Source] = Field(default_factory=list)


# ── Tagged request records, one per capability ──


class _Request(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TextRequest(_Request):
    kind: Literal["text"] = "text"
    prompt: str = ""
    use_thinking: bool = False
    use_search: bool = False
    image: Optional[str] = None

    @field_validator("image")
    @classmethod
    def _image_is_data_url(cls, value):
        return _check_data_url(value)


class ImageRequest(_Request):
    kind: Literal["image"] = "image"
    prompt: str
    aspect_ratio: AspectRatio = "16:9"
    image_size: ImageSize = "1K"


class ImageEditRequest(_Request):
    kind: Literal["image_edit"] = "image_edit"
    source_image: str
    prompt: str

    @field_validator("source_image")
    @classmethod
    def _source_is_data_url(cls, value):
        if not value.startswith("data:"):
            raise ValueError("expected a data URL")
        return value


class VideoRequest(_Request):
    kind: Literal["video"] = "video"
    prompt: str = ""
    aspect_ratio: AspectRatio = "16:9"
    resolution: VideoResolution = "1080p"
    image: Optional[str] = None

    @field_validator("image")
    @classmethod
    def _image_is_data_url(cls, value):
        return _check_data_url(value)


class SpeechRequest(_Request):
    kind: Literal["speech"] = "speech"
    text: str


# ── Browser payloads ──


class ChatInput(_Request):
    text: str = ""
    image: Optional[str] = None

    @field_validator("image")
    @classmethod
    def _image_is_data_url(cls, value):
        return _check_data_url(value)


class ImageInput(_Request):
    prompt: str = ""
    source_image: Optional[str] = None

    @field_validator("source_image")
    @classmethod
    def _source_is_data_url(cls, value):
        return _check_data_url(value)


class VideoInput(_Request):
    prompt: str = ""
    image: Optional[str] = None

    @field_validator("image")
    @classmethod
    def _image_is_data_url(cls, value):
        return _check_data_url(value)


def _check_data_url(value):
    if not value:
        return None
    if not value.startswith("data:"):
        raise ValueError("expected a data URL")
    return value


class VideoHandle(BaseModel):
    """Downloaded video bytes, ready to be served back to the page."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "video/mp4"
    created_at: int = Field(default_factory=_now_ms)
