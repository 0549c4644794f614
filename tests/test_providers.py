import asyncio
import base64
import json
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from promptmedia.config import Settings
from promptmedia.errors import BackendError
from promptmedia.main import create_app
from promptmedia.models.artifact import SourceImage
from promptmedia.models.request import Mode, VideoSettings
from promptmedia.services.operation_poller import PollPolicy
from promptmedia.services.providers import create_image_backend, create_video_backend
from promptmedia.services.providers.base import BackendRequest, GeneratedVideo, VideoBackendRequest
from promptmedia.services.providers.gemini_image import GeminiImageBackend, _build_config, unwrap_response
from promptmedia.services.providers.gemini_video import GeminiVideoBackend, build_predict_body, parse_operation
from promptmedia.services.providers.mock import MockImageBackend, MockVideoBackend


def _image(name):
    return SourceImage(data=name.encode(), mime_type="image/png", filename=name)


def test_predict_body_carries_frames_and_references():
    request = VideoBackendRequest(
        mode=Mode.REFERENCES_TO_VIDEO,
        prompt="hero",
        settings=VideoSettings(model="veo"),
        config={"resolution": "720p", "aspectRatio": "16:9"},
        reference_images=[_image("r1")],
        style_image=_image("s"),
    )

    body = build_predict_body(request)

    instance = body["instances"][0]
    assert instance["prompt"] == "hero"
    assert [r["referenceType"] for r in instance["referenceImages"]] == ["asset", "style"]
    assert instance["referenceImages"][0]["image"]["bytesBase64Encoded"] == base64.b64encode(b"r1").decode()
    assert "image" not in instance
    assert body["parameters"] == {"resolution": "720p", "aspectRatio": "16:9"}


def test_parse_operation_variants():
    running = parse_operation({"name": "operations/1"})
    assert running.name == "operations/1" and not running.done and running.videos == []

    done = parse_operation({
        "name": "operations/1",
        "done": True,
        "response": {"generateVideoResponse": {"generatedSamples": [
            {"video": {"uri": "https://files/v1.mp4", "mimeType": "video/mp4"}},
        ]}},
    })
    assert done.done
    assert done.videos[0].uri == "https://files/v1.mp4"

    inline = parse_operation({
        "name": "operations/2",
        "done": True,
        "response": {"generatedVideos": [{"video": {"videoBytes": base64.b64encode(b"mp4").decode()}}]},
    })
    assert inline.videos[0].data == b"mp4"

    failed = parse_operation({"name": "operations/3", "done": True, "error": {"message": "blocked"}})
    assert failed.error == "blocked"
    assert failed.videos == []


def test_gemini_video_backend_submit_poll_download():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, request.headers.get("x-goog-api-key")))
        if request.url.path.endswith(":predictLongRunning"):
            body = json.loads(request.content)
            assert body["instances"][0]["prompt"] == "waves"
            return httpx.Response(200, json={"name": "operations/abc"})
        if request.url.path.endswith("/operations/abc"):
            return httpx.Response(200, json={
                "name": "operations/abc",
                "done": True,
                "response": {"generateVideoResponse": {"generatedSamples": [
                    {"video": {"uri": "https://files.test/v.mp4"}},
                ]}},
            })
        return httpx.Response(200, content=b"video-data")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = GeminiVideoBackend("key-1", base_url="https://api.test/v1beta", http_client=client)
    request = VideoBackendRequest(
        mode=Mode.TEXT_TO_VIDEO,
        prompt="waves",
        settings=VideoSettings(model="veo-3.1-generate-preview"),
        config={"resolution": "720p"},
    )

    async def scenario():
        handle = await backend.submit(request)
        handle = await backend.poll(handle)
        return await backend.download(handle.videos[0])

    assert asyncio.run(scenario()) == b"video-data"
    assert calls[0] == ("POST", "/v1beta/models/veo-3.1-generate-preview:predictLongRunning", "key-1")
    assert calls[1][1] == "/v1beta/operations/abc"
    assert all(key == "key-1" for _, _, key in calls)


def test_gemini_video_backend_http_error():
    def handler(request):
        return httpx.Response(429, text="RESOURCE_EXHAUSTED")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = GeminiVideoBackend("key", http_client=client)

    with pytest.raises(BackendError) as exc_info:
        asyncio.run(backend.poll(parse_operation({"name": "operations/x"})))

    assert "429" in str(exc_info.value)
    assert exc_info.value.details == "RESOURCE_EXHAUSTED"


def test_gemini_video_backend_inline_video_skips_download():
    def handler(request):
        raise AssertionError("no request expected")

    backend = GeminiVideoBackend("key", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert asyncio.run(backend.download(GeneratedVideo(data=b"inline"))) == b"inline"


def test_gemini_video_backend_requires_key():
    backend = GeminiVideoBackend("", http_client=httpx.AsyncClient())
    request = VideoBackendRequest(
        mode=Mode.TEXT_TO_VIDEO, prompt="p", settings=VideoSettings(model="m"), config={},
    )

    with pytest.raises(BackendError):
        asyncio.run(backend.submit(request))


def test_image_config_only_when_needed():
    assert _build_config(BackendRequest(model="m", parts=["p"])) is None

    config = _build_config(BackendRequest(
        model="m", parts=["p"], response_modalities=("IMAGE", "TEXT"), aspect_ratio="1:1",
    ))
    assert list(config.response_modalities) == ["IMAGE", "TEXT"]
    assert config.image_config.aspect_ratio == "1:1"


def test_unwrap_response_collects_first_candidate_parts():
    response = SimpleNamespace(candidates=[
        SimpleNamespace(
            content=SimpleNamespace(parts=[
                SimpleNamespace(inline_data=None, text="Here you go. "),
                SimpleNamespace(inline_data=SimpleNamespace(data=b"png", mime_type="image/png"), text=None),
                SimpleNamespace(inline_data=None, text="Enjoy"),
            ]),
            finish_reason="STOP",
        ),
        SimpleNamespace(content=SimpleNamespace(parts=[
            SimpleNamespace(inline_data=SimpleNamespace(data=b"other", mime_type="image/png"), text=None),
        ])),
    ])

    unwrapped = unwrap_response(response, "img-model")

    assert [i.data for i in unwrapped.images] == [b"png"]
    assert unwrapped.text == "Here you go. Enjoy"
    assert unwrapped.finish_reason == "STOP"
    assert unwrap_response(SimpleNamespace(candidates=[])).images == []


def test_gemini_image_backend_requires_key():
    with pytest.raises(BackendError):
        asyncio.run(GeminiImageBackend(api_key="").generate(BackendRequest(model="m", parts=["p"])))


def test_factories_honour_mock_flag():
    settings = Settings(USE_MOCK_API=True)
    assert isinstance(create_image_backend(settings), MockImageBackend)
    assert isinstance(create_video_backend(settings), MockVideoBackend)


def test_mock_backends_serve_full_requests():
    app = create_app(Settings(USE_MOCK_API=True), poll_policy=PollPolicy(interval=0.0, timeout=5.0))
    client = TestClient(app)

    image = client.post("/process", json={"mode": "text-to-image", "prompt": "a quiet harbor"})
    assert image.status_code == 200
    assert client.get(f"/image/{image.json()['taskId']}").content.startswith(b"\x89PNG")

    video = client.post("/generate-video", json={"mode": "text_to_video", "prompt": "waves"})
    assert video.status_code == 200
    assert client.get(f"/video/{video.json()['taskId']}").headers["content-type"] == "video/mp4"


def test_gemini_video_download_keeps_key_on_origin_host():
    seen = []

    def handler(request):
        seen.append((request.url.host, request.headers.get("x-goog-api-key")))
        if request.url.path == "/files/v.mp4":
            return httpx.Response(302, headers={"location": "/files/v.mp4:download"})
        if request.url.host == "generativelanguage.test":
            return httpx.Response(307, headers={"location": "https://storage.test/blob/v.mp4"})
        return httpx.Response(200, content=b"video-data")

    backend = GeminiVideoBackend("key-1", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    data = asyncio.run(backend.download(GeneratedVideo(uri="https://generativelanguage.test/files/v.mp4")))

    assert data == b"video-data"
    assert seen == [
        ("generativelanguage.test", "key-1"),
        ("generativelanguage.test", "key-1"),
        ("storage.test", None),
    ]


def test_gemini_video_download_redirect_loop():
    def handler(request):
        return httpx.Response(302, headers={"location": "https://files.test/again"})

    backend = GeminiVideoBackend("key", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(BackendError) as exc_info:
        asyncio.run(backend.download(GeneratedVideo(uri="https://files.test/start")))

    assert "redirects" in str(exc_info.value)
