import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from audio import AudioBuffer
from errors import MissingPayloadError, VideoCancelled, ViewBusy
from models import ChatMessage, GenerationSettings, VideoHandle
from ui_strings import (
    CHAT_ERROR_TEXT,
    IMAGE_FAILURE_ALERT,
    VIDEO_FAILURE_ALERT,
    VIDEO_STATUS_INITIAL,
    VIDEO_STATUS_STEPS,
)
from video_workflow import STATUS_INTERVAL, StatusTicker

logger = logging.getLogger(__name__)


class SettingsView:
    def __init__(self, settings=None):
        self.settings = settings or GenerationSettings()

    def update(self, **changes):
        """Replace the snapshot; invalid or unknown fields raise ValidationError."""
        merged = {**self.settings.model_dump(), **changes}
        self.settings = GenerationSettings.model_validate(merged)
        return self.settings


@dataclass
class ChatState:
    messages: List[ChatMessage] = field(default_factory=list)
    is_loading: bool = False


@dataclass
class ImageLabState:
    images: List[str] = field(default_factory=list)  # newest first
    is_generating: bool = False
    alert: Optional[str] = None


@dataclass
class VideoStudioState:
    latest: Optional[VideoHandle] = None
    is_generating: bool = False
    status_text: str = ""
    alert: Optional[str] = None


class _View:
    """Owns one state object and its in-flight flag.

    `settings` is a callable returning the current GenerationSettings, so each
    request reads a fresh snapshot.
    """

    busy_flag = "is_generating"

    def __init__(self, service, settings):
        self._service = service
        self._settings = settings
        self._lock = threading.Lock()

    @property
    def busy(self):
        return getattr(self.state, self.busy_flag)

    def _claim(self):
        with self._lock:
            if self.busy:
                return False
            setattr(self.state, self.busy_flag, True)
            return True

    def _release(self):
        setattr(self.state, self.busy_flag, False)


class ChatView(_View):
    busy_flag = "is_loading"

    def __init__(self, service, settings):
        super().__init__(service, settings)
        self.state = ChatState()

    def send(self, text, image=None):
        """Send one message. Returns the assistant reply, or None when nothing was sent."""
        if not text.strip() and not image:
            return None
        if not self._claim():
            return None

        settings = self._settings()
        self.state.messages.append(ChatMessage(role="user", text=text, image=image))
        try:
            result = self._service.generate_text(
                text,
                use_thinking=settings.use_thinking,
                use_search=settings.use_search,
                image=image,
            )
            reply = ChatMessage(
                role="assistant",
                text=result.text,
                sources=result.sources,
                is_thinking=settings.use_thinking,
            )
            self.state.messages.append(reply)
        except Exception:
            logger.exception("Chat request failed")
            reply = ChatMessage(role="assistant", text=CHAT_ERROR_TEXT)
            self.state.messages.append(reply)
        finally:
            self._release()
        return reply

    def find(self, message_id):
        for message in self.state.messages:
            if message.id == message_id:
                return message
        raise KeyError(message_id)

    def read_aloud(self, message_id):
        message = self.find(message_id)
        return AudioBuffer(self._service.text_to_speech(message.text))


class ImageLabView(_View):
    def __init__(self, service, settings):
        super().__init__(service, settings)
        self.state = ImageLabState()

    def generate(self, prompt, source_image=None):
        """Edit `source_image` when given, otherwise generate from scratch.

        Returns the new data URL, or None on a blank prompt or a failure
        (failures set `state.alert` and keep earlier images). Raises ViewBusy
        while a previous request is still in flight.
        """
        if not prompt.strip():
            return None
        if not self._claim():
            raise ViewBusy("An image is already being generated")

        settings = self._settings()
        self.state.alert = None
        try:
            if source_image:
                url = self._service.edit_image(source_image, prompt)
            else:
                url = self._service.generate_image(
                    prompt,
                    aspect_ratio=settings.aspect_ratio,
                    image_size=settings.image_size,
                )
            if not url:
                raise MissingPayloadError("Model did not return an image")
            self.state.images.insert(0, url)
            return url
        except Exception:
            logger.exception("Image generation failed")
            self.state.alert = IMAGE_FAILURE_ALERT
            return None
        finally:
            self._release()


class VideoStudioView(_View):
    def __init__(self, service, settings, status_interval=STATUS_INTERVAL, ticker_factory=StatusTicker):
        super().__init__(service, settings)
        self.state = VideoStudioState()
        self._status_interval = status_interval
        self._ticker_factory = ticker_factory
        self._job = None
        self._cancel_requested = False

    def generate(self, prompt, source_image=None):
        """Run a generation on the calling thread. Returns the handle or None."""
        job = self._start(prompt, source_image)
        if job is None:
            return None
        return self._run(job)

    def submit(self, prompt, source_image=None):
        """Like generate, but on a worker thread. Returns whether a job was started."""
        job = self._start(prompt, source_image)
        if job is None:
            return False
        worker = threading.Thread(target=self._run, args=(job,), name="video-generation", daemon=True)
        worker.start()
        return True

    def cancel(self):
        """Stop the in-flight job. A cancel that lands before the job exists is held until it does."""
        with self._lock:
            if not self.busy:
                return False
            self._cancel_requested = True
            if self._job is not None:
                self._job.cancel()
            return True

    def _set_status(self, text):
        self.state.status_text = text

    def _start(self, prompt, source_image):
        if not prompt.strip() and not source_image:
            return None
        if not self._claim():
            return None

        settings = self._settings()
        self.state.alert = None
        try:
            job = self._service.video_job(
                prompt,
                aspect_ratio=settings.aspect_ratio,
                resolution=settings.video_resolution,
                image=source_image,
            )
        except Exception:
            logger.exception("Video generation failed")
            self.state.alert = VIDEO_FAILURE_ALERT
            self._finish()
            return None

        with self._lock:
            self._job = job
            if self._cancel_requested:
                job.cancel()
        return job

    def _run(self, job):
        self.state.status_text = VIDEO_STATUS_INITIAL
        ticker = self._ticker_factory(VIDEO_STATUS_STEPS, self._set_status, interval=self._status_interval)
        ticker.start()
        try:
            handle = job.run()
            self.state.latest = handle
            return handle
        except VideoCancelled:
            logger.info("Video generation cancelled")
            return None
        except Exception:
            logger.exception("Video generation failed")
            self.state.alert = VIDEO_FAILURE_ALERT
            return None
        finally:
            ticker.stop()
            self._finish()

    def _finish(self):
        with self._lock:
            self._job = None
            self._cancel_requested = False
            self.state.status_text = ""
            self._release()
