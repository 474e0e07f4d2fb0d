class GenerationError(Exception):
    """Base class for failures raised by the generation layer itself."""


class MissingPayloadError(GenerationError):
    """The model answered, but without the image/audio/video payload we asked for."""


class VideoCancelled(GenerationError):
    pass


class ViewBusy(Exception):
    """A view was asked to start a request while its previous one is in flight."""
