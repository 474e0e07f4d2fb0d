"""Decoding of the raw speech payload returned by the TTS model.

The model answers with headerless mono PCM: 24 kHz, 16-bit signed,
little-endian. Playback wants floats in [-1, 1), so every sample is divided
by 32768.
"""

import io
import struct
import wave
from dataclasses import dataclass, field

SAMPLE_RATE = 24000
SAMPLE_WIDTH = 2
PCM_SCALE = 32768.0


def decode_pcm16(data):
    if len(data) % SAMPLE_WIDTH:
        raise ValueError(f"PCM16 payload has odd length {len(data)}")
    count = len(data) // SAMPLE_WIDTH
    return [s / PCM_SCALE for s in struct.unpack(f"<{count}h", data)]


def encode_wav(pcm, sample_rate=SAMPLE_RATE):
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buf.getvalue()


@dataclass
class AudioBuffer:
    """Single-channel playback buffer built from a PCM16 payload."""

    pcm: bytes
    sample_rate: int = SAMPLE_RATE
    channel_data: list = field(init=False)

    def __post_init__(self):
        self.channel_data = decode_pcm16(self.pcm)

    @property
    def duration(self):
        return len(self.channel_data) / self.sample_rate

    def to_wav(self):
        return encode_wav(self.pcm, self.sample_rate)
