CHAT_ERROR_TEXT = """\
I encountered an error processing your request. \
Please check your API configuration or try again."""

IMAGE_FAILURE_ALERT = "Failed to generate image."

VIDEO_FAILURE_ALERT = """\
Video generation failed. Please ensure your API key supports Veo models."""

SPEECH_FAILURE_TEXT = "Speech synthesis failed."

VIDEO_STATUS_INITIAL = "Initializing Veo 3.1 Neural Engine..."

# Cosmetic only: shown while the video operation is being polled.
VIDEO_STATUS_STEPS = [
    "Analyzing temporal consistency...",
    "Mapping latent vectors...",
    "Synthesizing high-res frames...",
    "Applying fluid motion physics...",
    "Refining cinematic quality...",
]

CHAT_SUGGESTIONS = [
    "Analyze code structure",
    "Generate a surreal landscape",
    "Summarize global news",
    "Write a marketing script",
]
