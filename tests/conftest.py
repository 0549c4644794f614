"""Pytest configuration helpers.

This conftest ensures ``backend/`` is on ``sys.path`` so tests can import
the ``promptmedia`` package without installing it, and provides in-process
fake backends that record every call.
"""
import io
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

from PIL import Image  # noqa: E402

from promptmedia.models.artifact import ImageInput  # noqa: E402
from promptmedia.services.providers.base import (  # noqa: E402
    BackendResponse,
    GeneratedVideo,
    InlineImage,
    OperationHandle,
)


def make_png(size=(8, 6), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, "PNG")
    return buf.getvalue()


class FakeImageBackend:
    """Returns a canned response (or raises) and records every request."""

    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    async def generate(self, request):
        self.calls.append(request)
        if self.exc is not None:
            raise self.exc
        if self.response is not None:
            return self.response
        if "IMAGE" in request.response_modalities:
            return BackendResponse(
                images=[InlineImage(data=make_png((4, 4)), mime_type="image/png")],
                model=request.model,
            )
        return BackendResponse(
            text="A woman in a red coat standing next to a green tree.",
            model=request.model,
        )


class FakeVideoBackend:
    """Operation finishes after ``polls_until_done`` polls (never if None)."""

    def __init__(self, polls_until_done=1, videos=None, error=None, data=b"\x00\x00\x00\x18ftypmp42"):
        self.polls_until_done = polls_until_done
        self.videos = videos
        self.error = error
        self.data = data
        self.submitted = []
        self.polls = 0
        self.downloads = 0

    async def submit(self, request):
        self.submitted.append(request)
        return OperationHandle(name=f"operations/fake-{len(self.submitted)}")

    async def poll(self, handle):
        self.polls += 1
        if self.polls_until_done is None or self.polls < self.polls_until_done:
            return OperationHandle(name=handle.name)
        videos = self.videos
        if videos is None:
            videos = [GeneratedVideo(uri="https://example.test/video.mp4", mime_type="video/mp4")]
        return OperationHandle(name=handle.name, done=True, videos=videos, error=self.error)

    async def download(self, video):
        self.downloads += 1
        return self.data


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_input(png_bytes):
    return ImageInput(data=png_bytes, content_type="image/png", filename="photo.png")


@pytest.fixture
def image_backend():
    return FakeImageBackend()


@pytest.fixture
def video_backend():
    return FakeVideoBackend()
