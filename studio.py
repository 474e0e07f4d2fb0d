from views import ChatView, ImageLabView, SettingsView, VideoStudioView
from video_workflow import STATUS_INTERVAL

VIEWS = ("chat", "images", "videos", "code", "settings")


class CredentialGate:
    """Wraps the two optional host hooks that decide whether a key is available.

    Without `has_selected_key` the credential is assumed present. After
    `open_select_key` returns, selection is assumed to have succeeded.
    """

    def __init__(self, has_selected_key=None, open_select_key=None):
        self._has_selected_key = has_selected_key
        self._open_select_key = open_select_key
        self.selected = False

    def check(self):
        if self._has_selected_key is None:
            self.selected = True
        else:
            self.selected = bool(self._has_selected_key())
        return self.selected

    @property
    def needs_key(self):
        return not self.selected and self._open_select_key is not None

    def select(self, *args):
        if self._open_select_key is None:
            return self.selected
        self._open_select_key(*args)
        self.selected = True
        return True


class Studio:
    """Top-level shell: the active view, shared settings, and the credential gate."""

    def __init__(self, service, gate=None, video_status_interval=STATUS_INTERVAL):
        self._service = service
        self._video_status_interval = video_status_interval
        self.gate = gate or CredentialGate()
        self.reset()

    def reset(self):
        if hasattr(self, "videos"):
            self.videos.cancel()
        self.current_view = "chat"
        self.settings_view = SettingsView()
        current = lambda: self.settings_view.settings
        self.chat = ChatView(self._service, current)
        self.images = ImageLabView(self._service, current)
        self.videos = VideoStudioView(
            self._service, current, status_interval=self._video_status_interval,
        )
        self.gate.check()

    @property
    def settings(self):
        return self.settings_view.settings

    def navigate(self, view):
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        self.current_view = view

    def snapshot(self):
        return {
            "view": self.current_view,
            "settings": self.settings.model_dump(),
            "key_selected": self.gate.selected,
            "needs_key": self.gate.needs_key,
        }
