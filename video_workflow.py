import enum
import logging
import random
import threading

from errors import MissingPayloadError, VideoCancelled

logger = logging.getLogger(__name__)

POLL_INTERVAL = 5.0
STATUS_INTERVAL = 8.0


class VideoJobState(str, enum.Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"


def video_uri(operation):
    """Pull the result reference out of a finished operation, or None."""
    response = getattr(operation, "response", None)
    videos = getattr(response, "generated_videos", None) or []
    if not videos or videos[0].video is None:
        return None
    return videos[0].video.uri


class VideoGeneration:
    """Submit a video job, poll its operation until done, then fetch the bytes.

    `submit()` returns an operation, `refresh(operation)` returns the updated
    operation, and `fetch(uri)` turns the result reference into a handle.
    `wait(seconds)` blocks for one interval and returns True when the wait was
    interrupted by `cancel()`; it defaults to an Event wait so tests can swap
    in an instant one.
    """

    def __init__(self, submit, refresh, fetch, poll_interval=POLL_INTERVAL, wait=None):
        self._submit = submit
        self._refresh = refresh
        self._fetch = fetch
        self.poll_interval = poll_interval
        self._cancelled = threading.Event()
        self._wait = wait or self._cancelled.wait
        self.state = VideoJobState.SUBMITTED
        self.polls = 0

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    def run(self):
        self.state = VideoJobState.SUBMITTED
        try:
            operation = self._submit()
            self.state = VideoJobState.POLLING
            while not operation.done:
                if self._wait(self.poll_interval) or self.cancelled:
                    raise VideoCancelled("Video generation was cancelled")
                operation = self._refresh(operation)
                self.polls += 1
                logger.debug("Video operation %s poll %d: done=%s",
                             getattr(operation, "name", "?"), self.polls, operation.done)

            uri = video_uri(operation)
            if not uri:
                error = getattr(operation, "error", None)
                raise MissingPayloadError(
                    f"Video operation finished without a result: {error or 'no video returned'}"
                )
            handle = self._fetch(uri)
        except Exception:
            self.state = VideoJobState.FAILED
            raise
        self.state = VideoJobState.DONE
        logger.info("Video ready after %d polls", self.polls)
        return handle


class StatusTicker:
    """Cycles a cosmetic status phrase on a repeating timer until stopped."""

    def __init__(self, phrases, on_tick, interval=STATUS_INTERVAL, choice=random.choice):
        self._phrases = list(phrases)
        self._on_tick = on_tick
        self._interval = interval
        self._choice = choice
        self._stop = threading.Event()
        self._thread = None

    def start(self):
        self._thread = threading.Thread(target=self._loop, name="video-status", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1)

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def _loop(self):
        while not self._stop.wait(self._interval):
            self._on_tick(self._choice(self._phrases))
