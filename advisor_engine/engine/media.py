"""Media client — text-to-speech and image generation backends."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SpeechOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str = "tts-1-hd"
    voice: Literal["alloy", "echo", "fable", "onyx", "nova", "shimmer"] = "alloy"
    response_format: Literal["mp3", "opus", "aac", "flac", "wav"] = "mp3"
    speed: float = Field(default=1.0, ge=0.25, le=4.0)

    @property
    def media_type(self) -> str:
        return "audio/mpeg" if self.response_format == "mp3" else f"audio/{self.response_format}"


class ImageOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str = "dall-e-3"
    width: int = 1024
    height: int = 1024
    quality: Literal["standard", "hd"] = "hd"
    style: Literal["vivid", "natural"] = "vivid"

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


class MediaClient(ABC):
    @abstractmethod
    async def synthesize_speech(self, text: str, options: SpeechOptions) -> bytes: ...

    @abstractmethod
    async def generate_image(self, prompt: str, options: ImageOptions) -> bytes: ...


class OpenAIMediaClient(MediaClient):
    def __init__(self, api_key: str | None = None) -> None:
        from openai import AsyncOpenAI

        self._client = AsyncOpenAI(api_key=api_key)

    async def synthesize_speech(self, text: str, options: SpeechOptions) -> bytes:
        response = await self._client.audio.speech.create(
            model=options.model,
            voice=options.voice,
            input=text,
            response_format=options.response_format,
            speed=options.speed,
        )
        return response.content

    async def generate_image(self, prompt: str, options: ImageOptions) -> bytes:
        response = await self._client.images.generate(
            model=options.model,
            prompt=prompt,
            size=options.size,
            quality=options.quality,
            style=options.style,
            response_format="b64_json",
            n=1,
        )
        return base64.b64decode(response.data[0].b64_json)


class MockMediaClient(MediaClient):
    """Returns fixed bytes and records every prompt."""

    def __init__(self, audio: bytes = b"ID3mock-audio", image: bytes = b"\x89PNGmock-image") -> None:
        self._audio = audio
        self._image = image
        self.prompts: list[str] = []

    async def synthesize_speech(self, text: str, options: SpeechOptions) -> bytes:
        self.prompts.append(text)
        return self._audio

    async def generate_image(self, prompt: str, options: ImageOptions) -> bytes:
        self.prompts.append(prompt)
        return self._image
