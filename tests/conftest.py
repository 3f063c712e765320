"""Shared fixtures: fake previews, sample photos, and a scriptable remote client."""

import asyncio
import io
from types import SimpleNamespace
from typing import List, Optional

import pytest
from PIL import Image

from timeprint.photos.collection import PhotoCollection
from timeprint.photos.item import RestoredImage
from timeprint.photos.preview import PreviewHandle
from timeprint.preprocessing.loader import SourceImage
from timeprint.settings import SessionSettings

HANG = "hang"


def make_png(width: int = 8, height: int = 6, color=(120, 80, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class FakePreviewFactory:
    """Records every preview it hands out; nothing touches disk."""

    def __init__(self) -> None:
        self.handles: List[PreviewHandle] = []

    def __call__(self, data: bytes, mime_type: str) -> PreviewHandle:
        handle = PreviewHandle(None)
        self.handles.append(handle)
        return handle


class FakeRestorationClient:
    """Stand-in for the remote client.

    Each call pops the next scripted outcome: a RestoredImage is returned, an
    exception is raised, and ``HANG`` never resolves. With no script left every
    call succeeds.
    """

    def __init__(self, outcomes: Optional[list] = None, delay: float = 0.0) -> None:
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.calls: List[SimpleNamespace] = []
        self.active = 0
        self.max_active = 0
        self.late_completions = 0

    async def restore(self, image, mime_type, mode):
        self.calls.append(SimpleNamespace(image=image, mime_type=mime_type, mode=mode))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            outcome = self.outcomes.pop(0) if self.outcomes else None
            if outcome == HANG:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delay)
            if isinstance(outcome, BaseException):
                raise outcome
            if isinstance(outcome, RestoredImage):
                return outcome
            return RestoredImage(data=make_png(), mime_type="image/png")
        finally:
            self.active -= 1


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def preview_factory():
    return FakePreviewFactory()


@pytest.fixture
def collection(preview_factory):
    return PhotoCollection(preview_factory=preview_factory)


@pytest.fixture
def make_source(png_bytes):
    def _make(name: str = "photo.png") -> SourceImage:
        return SourceImage(data=png_bytes, mime_type="image/png", name=name)
    return _make


@pytest.fixture
def settings():
    return SessionSettings(has_api_key=True)
