import logging

from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

from config import load_config
from errors import ViewBusy
from gemini_service import GeminiService
from models import ASPECT_RATIOS, IMAGE_SIZES, VIDEO_RESOLUTIONS, ChatInput, ImageInput, VideoInput
from studio import CredentialGate, Studio
from ui_strings import CHAT_SUGGESTIONS, SPEECH_FAILURE_TEXT

config = load_config()

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
logger = logging.getLogger(__name__)

app = Flask(__name__)

service = GeminiService(
    api_key=config.api_key,
    http_timeout_ms=config.http_timeout_ms,
    poll_interval=config.video_poll_interval,
    fetch_timeout=config.video_fetch_timeout,
)
studio = Studio(
    service,
    gate=CredentialGate(
        has_selected_key=lambda: bool(service.api_key),
        open_select_key=service.set_api_key,
    ),
    video_status_interval=config.video_status_interval,
)


def validation_error(e):
    first = e.errors()[0]
    where = ".".join(str(p) for p in first["loc"]) or "body"
    return jsonify({"error": f"{where}: {first['msg']}"}), 400


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def message_list():
    return [m.model_dump() for m in studio.chat.state.messages]


def video_state():
    state = studio.videos.state
    return {
        "is_generating": state.is_generating,
        "status_text": state.status_text,
        "alert": state.alert,
        "latest": state.latest.created_at if state.latest else None,
    }


@app.route("/")
def index():
    # A page load starts a fresh session, same as reloading a browser tab.
    studio.reset()
    return HTML_PAGE


@app.route("/api/state")
def get_state():
    state = studio.snapshot()
    state["options"] = {
        "aspect_ratio": ASPECT_RATIOS,
        "image_size": IMAGE_SIZES,
        "video_resolution": VIDEO_RESOLUTIONS,
    }
    state["suggestions"] = CHAT_SUGGESTIONS
    return jsonify(state)


@app.route("/api/view", methods=["POST"])
def navigate():
    try:
        studio.navigate(json_body().get("view", ""))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(studio.snapshot())


@app.route("/api/settings", methods=["GET", "POST"])
def settings():
    if request.method == "POST":
        try:
            studio.settings_view.update(**json_body())
        except ValidationError as e:
            return validation_error(e)
    return jsonify(studio.settings.model_dump())


@app.route("/api/key", methods=["POST"])
def select_key():
    api_key = str(json_body().get("api_key", "")).strip()
    if not api_key:
        return jsonify({"error": "API key cannot be empty"}), 400
    studio.gate.select(api_key)
    return jsonify(studio.snapshot())


@app.route("/api/chat", methods=["GET", "POST"])
def chat():
    if request.method == "GET":
        return jsonify({"messages": message_list(), "is_loading": studio.chat.busy})

    try:
        payload = ChatInput.model_validate(json_body())
    except ValidationError as e:
        return validation_error(e)
    if not payload.text.strip() and not payload.image:
        return jsonify({"error": "Message cannot be empty"}), 400

    reply = studio.chat.send(payload.text, image=payload.image)
    if reply is None:
        return jsonify({"error": "A message is already being answered"}), 409
    return jsonify({"reply": reply.model_dump(), "messages": message_list()})


@app.route("/api/chat/<message_id>/speech", methods=["POST"])
def speech(message_id):
    try:
        buffer = studio.chat.read_aloud(message_id)
    except KeyError:
        return jsonify({"error": "Unknown message"}), 404
    except Exception:
        logger.exception("TTS error")
        return jsonify({"error": SPEECH_FAILURE_TEXT}), 502
    return Response(
        buffer.to_wav(),
        mimetype="audio/wav",
        headers={"X-Audio-Duration": f"{buffer.duration:.3f}"},
    )


@app.route("/api/images", methods=["GET", "POST"])
def images():
    if request.method == "GET":
        return jsonify({"images": studio.images.state.images})

    try:
        payload = ImageInput.model_validate(json_body())
    except ValidationError as e:
        return validation_error(e)
    if not payload.prompt.strip():
        return jsonify({"error": "Prompt cannot be empty"}), 400

    try:
        url = studio.images.generate(payload.prompt, source_image=payload.source_image)
    except ViewBusy as e:
        return jsonify({"error": str(e)}), 409
    if url is None:
        return jsonify({"error": studio.images.state.alert}), 502
    return jsonify({"image": url, "images": studio.images.state.images})


@app.route("/api/videos", methods=["GET", "POST"])
def videos():
    if request.method == "GET":
        return jsonify(video_state())

    try:
        payload = VideoInput.model_validate(json_body())
    except ValidationError as e:
        return validation_error(e)
    if not payload.prompt.strip() and not payload.image:
        return jsonify({"error": "Prompt or image required"}), 400

    if not studio.videos.submit(payload.prompt, source_image=payload.image):
        return jsonify({"error": "A video is already being generated"}), 409
    return jsonify(video_state()), 202


@app.route("/api/videos/cancel", methods=["POST"])
def cancel_video():
    return jsonify({"cancelled": studio.videos.cancel()})


@app.route("/api/videos/latest")
def latest_video():
    handle = studio.videos.state.latest
    if handle is None:
        return jsonify({"error": "No video yet"}), 404
    return Response(handle.data, mimetype=handle.mime_type)


HTML_PAGE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Gemini Studio</title>
<style>
  *, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

  body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    background: #0f0f0f;
    color: #e0e0e0;
    height: 100vh;
    overflow: hidden;
  }

  .layout { display: flex; height: 100vh; }

  nav {
    width: 220px;
    border-right: 1px solid #1e1e1e;
    padding: 20px 12px;
    display: flex;
    flex-direction: column;
    gap: 4px;
    flex-shrink: 0;
  }
  nav h1 { font-size: 0.95rem; color: #fff; padding: 0 12px 16px; }
  nav button {
    background: transparent;
    color: #888;
    text-align: left;
    box-shadow: none;
  }
  nav button:hover { background: #1a1a1a; color: #e0e0e0; }
  nav button.active { background: #1e1e1e; color: #fff; }

  main { flex: 1; overflow-y: auto; padding: 24px 32px 80px; }
  section { display: none; flex-direction: column; gap: 16px; max-width: 900px; }
  section.visible { display: flex; }
  section h2 { font-size: 0.95rem; font-weight: 600; color: #fff; }

  textarea, input[type=password] {
    width: 100%;
    background: #1a1a1a;
    color: #e0e0e0;
    border: 1px solid #2a2a2a;
    border-radius: 10px;
    padding: 14px;
    font-size: 0.9rem;
    font-family: inherit;
    outline: none;
    transition: border-color 0.2s;
  }
  textarea { min-height: 90px; resize: vertical; line-height: 1.5; }
  textarea:focus, input:focus { border-color: #8b5cf6; }

  button {
    background: #8b5cf6;
    color: #fff;
    border: none;
    border-radius: 8px;
    padding: 8px 20px;
    font-size: 0.82rem;
    font-weight: 500;
    cursor: pointer;
    transition: background 0.2s, opacity 0.2s;
  }
  button:hover { background: #7c3aed; }
  button:disabled { opacity: 0.5; cursor: not-allowed; }
  button.ghost { background: #232323; color: #aaa; border: 1px solid #333; }
  button.ghost.active { background: #8b5cf6; color: #fff; border-color: #8b5cf6; }

  .controls { display: flex; gap: 8px; align-items: center; flex-wrap: wrap; }
  .status { font-size: 0.78rem; color: #888; min-height: 1.2em; }

  .messages { display: flex; flex-direction: column; gap: 12px; }
  .msg {
    background: #1a1a1a;
    border: 1px solid #2a2a2a;
    border-radius: 10px;
    padding: 14px;
    white-space: pre-wrap;
    word-break: break-word;
    line-height: 1.6;
    font-size: 0.9rem;
  }
  .msg.user { background: #1e1a2e; border-color: #2e1e3a; align-self: flex-end; max-width: 80%; }
  .msg img { max-width: 240px; border-radius: 8px; display: block; margin-bottom: 8px; }
  .msg .badge { font-size: 0.65rem; color: #a78bfa; text-transform: uppercase; letter-spacing: 0.5px; }
  .msg .sources { margin-top: 10px; font-size: 0.75rem; }
  .msg .sources a { color: #4ade80; margin-right: 10px; }
  .msg .speak { margin-top: 8px; padding: 4px 12px; font-size: 0.72rem; }

  .gallery { display: grid; grid-template-columns: repeat(auto-fill, minmax(220px, 1fr)); gap: 12px; }
  .gallery figure { margin: 0; }
  .gallery img { width: 100%; border-radius: 10px; border: 1px solid #2a2a2a; }
  .gallery a { display: inline-block; margin-top: 4px; color: #8ab4f8; font-size: 13px; }
  .preview { max-width: 160px; border-radius: 8px; display: none; }
  .preview.visible { display: block; }
  video { width: 100%; border-radius: 10px; background: #000; }

  .key-gate {
    position: fixed; inset: 0; background: #0f0f0f;
    display: none; align-items: center; justify-content: center;
  }
  .key-gate.visible { display: flex; }
  .key-gate .card { width: 380px; display: flex; flex-direction: column; gap: 12px; }
</style>
</head>
<body>

<div class="layout">
  <nav>
    <h1>Gemini Studio</h1>
    <button data-view="chat" onclick="navigate('chat')">Intelligent Chat</button>
    <button data-view="images" onclick="navigate('images')">Image Studio</button>
    <button data-view="videos" onclick="navigate('videos')">Video Lab</button>
    <button data-view="code" onclick="navigate('code')">Code Architect</button>
    <button data-view="settings" onclick="navigate('settings')">Settings</button>
  </nav>

  <main>
    <!-- ── Chat ── -->
    <section id="view-chat">
      <h2>Intelligent Chat</h2>
      <div id="suggestions" class="controls"></div>
      <div id="messages" class="messages"></div>
      <img id="chatPreview" class="preview">
      <textarea id="chatInput" placeholder="Type a message..."></textarea>
      <div class="controls">
        <input type="file" id="chatFile" accept="image/*" hidden>
        <button class="ghost" onclick="chatFile.click()">Attach image</button>
        <button id="chatSend" onclick="sendChat()">Send</button>
        <span id="chatFlags" class="status"></span>
      </div>
      <div id="chatStatus" class="status"></div>
    </section>

    <!-- ── Images ── -->
    <section id="view-images">
      <h2>Image Studio</h2>
      <textarea id="imagePrompt" placeholder="Describe your vision or an edit instruction..."></textarea>
      <div class="controls">
        <input type="file" id="imageFile" accept="image/*" hidden>
        <button class="ghost" onclick="imageFile.click()">Source image</button>
        <button class="ghost" onclick="clearSource('image')">Clear source</button>
        <button id="imageSend" onclick="generateImage()">Generate</button>
      </div>
      <img id="imagePreview" class="preview">
      <div id="imageStatus" class="status"></div>
      <div id="gallery" class="gallery"></div>
    </section>

    <!-- ── Video ── -->
    <section id="view-videos">
      <h2>Video Lab</h2>
      <textarea id="videoPrompt" placeholder="A futuristic cyber-city with neon rain reflecting on chrome streets, cinematic camera sweep..."></textarea>
      <div class="controls">
        <input type="file" id="videoFile" accept="image/*" hidden>
        <button class="ghost" onclick="videoFile.click()">Starting photo</button>
        <button class="ghost" onclick="clearSource('video')">Clear photo</button>
        <button id="videoSend" onclick="generateVideo()">Create Cinematic Video</button>
        <button class="ghost" id="videoCancel" onclick="cancelVideo()" disabled>Cancel</button>
      </div>
      <img id="videoPreview" class="preview">
      <div id="videoStatus" class="status"></div>
      <video id="videoPlayer" controls hidden></video>
      <a id="videoDownload" href="/api/videos/latest" download="video.mp4" hidden>Download MP4</a>
    </section>

    <!-- ── Code ── -->
    <section id="view-code">
      <h2>Code Architect</h2>
      <p>You can generate and analyze code directly in the Intelligent Chat view.
         Enable Deep Thinking in settings for advanced architecture.</p>
      <div class="controls"><button onclick="navigate('chat')">Go to Chat</button></div>
    </section>

    <!-- ── Settings ── -->
    <section id="view-settings">
      <h2>Settings</h2>
      <div class="controls" id="toggleControls"></div>
      <h2>Aspect ratio</h2>
      <div class="controls" data-setting="aspect_ratio"></div>
      <h2>Image size</h2>
      <div class="controls" data-setting="image_size"></div>
      <h2>Video resolution</h2>
      <div class="controls" data-setting="video_resolution"></div>
    </section>
  </main>
</div>

<div class="key-gate" id="keyGate">
  <div class="card">
    <h2>Select an API key</h2>
    <input type="password" id="keyInput" placeholder="Gemini API key">
    <button onclick="selectKey()">Continue</button>
    <div id="keyStatus" class="status"></div>
  </div>
</div>

<script>
  let state = null;
  const sources = { chat: null, image: null, video: null };

  async function api(path, body, method) {
    const res = await fetch(path, {
      method: method || (body === undefined ? 'GET' : 'POST'),
      headers: { 'Content-Type': 'application/json' },
      body: body === undefined ? undefined : JSON.stringify(body),
    });
    const data = await res.json();
    if (!res.ok || data.error) throw new Error(data.error || 'HTTP ' + res.status);
    return data;
  }

  function readFile(input, key, previewEl) {
    input.addEventListener('change', () => {
      const file = input.files[0];
      if (!file) return;
      const reader = new FileReader();
      reader.onload = e => {
        sources[key] = e.target.result;
        previewEl.src = sources[key];
        previewEl.classList.add('visible');
      };
      reader.readAsDataURL(file);
    });
  }
  readFile(chatFile, 'chat', chatPreview);
  readFile(imageFile, 'image', imagePreview);
  readFile(videoFile, 'video', videoPreview);

  function clearSource(key) {
    sources[key] = null;
    const el = document.getElementById(key + 'Preview');
    el.classList.remove('visible');
    el.removeAttribute('src');
  }

  // ── Shell ──
  async function load() {
    state = await api('/api/state');
    document.getElementById('keyGate').classList.toggle('visible', state.needs_key);
    suggestions.innerHTML = '';
    state.suggestions.forEach(s => {
      const b = document.createElement('button');
      b.className = 'ghost';
      b.textContent = s;
      b.onclick = () => { chatInput.value = s; };
      suggestions.appendChild(b);
    });
    render();
  }

  async function navigate(view) {
    state = Object.assign(state, await api('/api/view', { view }));
    render();
  }

  async function selectKey() {
    try {
      state = Object.assign(state, await api('/api/key', { api_key: keyInput.value }));
      document.getElementById('keyGate').classList.toggle('visible', state.needs_key);
    } catch (e) {
      keyStatus.textContent = e.message;
    }
  }

  function render() {
    document.querySelectorAll('nav button').forEach(b => {
      b.classList.toggle('active', b.dataset.view === state.view);
    });
    document.querySelectorAll('main section').forEach(s => {
      s.classList.toggle('visible', s.id === 'view-' + state.view);
    });
    renderSettings();
  }

  // ── Settings ──
  function renderSettings() {
    const s = state.settings;
    chatFlags.textContent = 'Search: ' + (s.use_search ? 'ON' : 'OFF') +
      ' · Thinking: ' + (s.use_thinking ? 'ON' : 'OFF');
    toggleControls.innerHTML = '';
    [['use_thinking', 'Deep Thinking'], ['use_search', 'Search Grounding']].forEach(([key, label]) => {
      const b = document.createElement('button');
      b.className = 'ghost' + (s[key] ? ' active' : '');
      b.textContent = label + ': ' + (s[key] ? 'ON' : 'OFF');
      b.onclick = () => updateSetting(key, !s[key]);
      toggleControls.appendChild(b);
    });
    document.querySelectorAll('[data-setting]').forEach(group => {
      const key = group.dataset.setting;
      group.innerHTML = '';
      state.options[key].forEach(value => {
        const b = document.createElement('button');
        b.className = 'ghost' + (s[key] === value ? ' active' : '');
        b.textContent = value;
        b.onclick = () => updateSetting(key, value);
        group.appendChild(b);
      });
    });
  }

  async function updateSetting(key, value) {
    state.settings = await api('/api/settings', { [key]: value });
    renderSettings();
  }

  // ── Chat ──
  function renderMessages(messages) {
    document.getElementById('messages').innerHTML = '';
    messages.forEach(m => {
      const el = document.createElement('div');
      el.className = 'msg ' + m.role;
      if (m.image) {
        const img = document.createElement('img');
        img.src = m.image;
        el.appendChild(img);
      }
      if (m.is_thinking && m.role === 'assistant') {
        const badge = document.createElement('div');
        badge.className = 'badge';
        badge.textContent = 'Deep Reasoning Applied';
        el.appendChild(badge);
      }
      el.appendChild(document.createTextNode(m.text));
      if (m.sources && m.sources.length) {
        const src = document.createElement('div');
        src.className = 'sources';
        src.textContent = 'Sources: ';
        m.sources.forEach(s => {
          const a = document.createElement('a');
          a.href = s.uri;
          a.target = '_blank';
          a.textContent = s.title;
          src.appendChild(a);
        });
        el.appendChild(src);
      }
      if (m.role === 'assistant') {
        const b = document.createElement('button');
        b.className = 'ghost speak';
        b.textContent = 'Listen';
        b.onclick = () => speak(m.id, b);
        el.appendChild(b);
      }
      document.getElementById('messages').appendChild(el);
    });
    document.querySelector('main').scrollTop = 1e9;
  }

  chatInput.addEventListener('keydown', e => {
    if (e.key === 'Enter' && !e.shiftKey) { e.preventDefault(); sendChat(); }
  });

  async function sendChat() {
    const text = chatInput.value;
    if (!text.trim() && !sources.chat) return;
    chatSend.disabled = true;
    chatStatus.textContent = 'Thinking...';
    const image = sources.chat;
    chatInput.value = '';
    clearSource('chat');
    try {
      const data = await api('/api/chat', { text, image });
      renderMessages(data.messages);
      chatStatus.textContent = '';
    } catch (e) {
      chatStatus.textContent = e.message;
    } finally {
      chatSend.disabled = false;
    }
  }

  async function speak(id, button) {
    button.disabled = true;
    try {
      const res = await fetch('/api/chat/' + id + '/speech', { method: 'POST' });
      if (!res.ok) throw new Error('HTTP ' + res.status);
      const audio = new Audio(URL.createObjectURL(await res.blob()));
      await audio.play();
    } catch (e) {
      console.error('TTS Error', e);
    } finally {
      button.disabled = false;
    }
  }

  // ── Images ──
  async function generateImage() {
    const prompt = imagePrompt.value;
    if (!prompt.trim()) return;
    imageSend.disabled = true;
    imageStatus.textContent = 'Generating...';
    try {
      const data = await api('/api/images', { prompt, source_image: sources.image });
      gallery.innerHTML = '';
      data.images.forEach((url, i) => {
        const figure = document.createElement('figure');
        const img = document.createElement('img');
        img.src = url;
        const link = document.createElement('a');
        link.href = url;
        link.download = `gemini-studio-${i}.png`;
        link.textContent = 'Download';
        figure.append(img, link);
        gallery.appendChild(figure);
      });
    } catch (e) {
      alert(e.message);
    } finally {
      imageSend.disabled = false;
      imageStatus.textContent = '';
    }
  }

  // ── Video ──
  async function generateVideo() {
    const prompt = videoPrompt.value;
    if (!prompt.trim() && !sources.video) return;
    videoSend.disabled = true;
    videoCancel.disabled = false;
    try {
      await api('/api/videos', { prompt, image: sources.video });
      pollVideo();
    } catch (e) {
      alert(e.message);
      videoSend.disabled = false;
      videoCancel.disabled = true;
    }
  }

  async function pollVideo() {
    const data = await api('/api/videos');
    if (data.is_generating) {
      videoStatus.textContent = 'Generating (' + data.status_text + ')';
      setTimeout(pollVideo, 2000);
      return;
    }
    videoStatus.textContent = '';
    videoSend.disabled = false;
    videoCancel.disabled = true;
    if (data.alert) { alert(data.alert); return; }
    if (data.latest) {
      videoPlayer.src = '/api/videos/latest?t=' + data.latest;
      videoPlayer.hidden = false;
      videoDownload.hidden = false;
    }
  }

  async function cancelVideo() {
    await api('/api/videos/cancel', {});
  }

  load();
</script>
</body>
</html>
"""

if __name__ == "__main__":
    app.run(debug=config.debug, port=config.port, threaded=True)
