import asyncio

import pytest

from conftest import FakeVideoBackend
from promptmedia.errors import ErrorKind, UnsupportedModeError, ValidationError
from promptmedia.models.artifact import ImageInput, SourceImage
from promptmedia.models.request import GenerationPayload, Mode, ResolvedImages, VideoSettings
from promptmedia.services.operation_poller import OperationPoller, PollPolicy
from promptmedia.services.strategies import (
    ExtendVideoStrategy,
    FramesToVideoStrategy,
    ReferencesToVideoStrategy,
    TextToVideoStrategy,
    build_video_config,
    parse_positive_int,
)


async def _no_sleep(seconds):
    return None


def _make(cls, backend=None, **kwargs):
    backend = backend or FakeVideoBackend()
    poller = OperationPoller(backend, PollPolicy(interval=0.0, timeout=None, max_attempts=10), sleep=_no_sleep)
    return cls(backend, poller, default_model="veo-3.1-generate-preview", **kwargs), backend


def _frame(name):
    return SourceImage(data=name.encode(), mime_type="image/png", filename=f"{name}.png")


def test_parse_positive_int():
    assert parse_positive_int(None, "fps") is None
    assert parse_positive_int("  ", "fps") is None
    assert parse_positive_int("24", "fps") == 24
    for bad in ("abc", "2.5", "0", "-3"):
        with pytest.raises(ValidationError) as exc_info:
            parse_positive_int(bad, "fps")
        assert exc_info.value.kind is ErrorKind.INVALID_FIELD


def test_config_omits_aspect_ratio_for_extend_only():
    settings = VideoSettings(model="m", resolution="1080p", aspect_ratio="9:16", fps=24, duration_seconds=8)

    assert build_video_config(Mode.TEXT_TO_VIDEO, settings) == {
        "resolution": "1080p",
        "aspectRatio": "9:16",
        "fps": 24,
        "durationSeconds": 8,
    }
    extend = build_video_config(Mode.EXTEND_VIDEO, settings)
    assert "aspectRatio" not in extend
    assert extend["resolution"] == "1080p"


def test_non_numeric_fps_rejected_in_validate():
    strategy, backend = _make(TextToVideoStrategy)

    with pytest.raises(ValidationError):
        strategy.validate(GenerationPayload(prompt="waves", fps="fast"))

    assert backend.submitted == []


@pytest.mark.parametrize("fields", [
    {"model": "not-a-model"},
    {"resolution": "1080p", "duration_seconds": "4"},
    {"aspect_ratio": "4:3"},
])
def test_settings_checked_against_model_capabilities(fields):
    strategy, _ = _make(TextToVideoStrategy)

    with pytest.raises(ValidationError):
        strategy.validate(GenerationPayload(prompt="waves", **fields))


def test_model_without_reference_support_rejected():
    strategy, _ = _make(ReferencesToVideoStrategy)

    with pytest.raises(ValidationError) as exc_info:
        strategy.validate(GenerationPayload(prompt="p", model="veo-3.0-generate-001"))

    assert "reference" in str(exc_info.value)


def test_text_to_video_runs_submit_poll_download():
    strategy, backend = _make(TextToVideoStrategy)
    payload = GenerationPayload(prompt=" waves ", fps="24")
    strategy.validate(payload)
    request = strategy.build_request(payload, ResolvedImages())

    outcome = asyncio.run(strategy.execute(request, "vid-1"))

    sent = backend.submitted[0]
    assert sent.mode is Mode.TEXT_TO_VIDEO
    assert sent.prompt == "waves"
    assert sent.config == {"resolution": "720p", "aspectRatio": "16:9", "fps": 24}
    assert backend.polls == 1 and backend.downloads == 1
    assert outcome.artifact.filename == "video-vid-1.mp4"
    assert outcome.result["videoUrl"] == "/video/vid-1"
    assert outcome.result["operationName"] == "operations/fake-1"
    assert strategy.summarize(request)["model"] == "veo-3.1-generate-preview"


def test_frames_to_video_requires_start_frame():
    strategy, _ = _make(FramesToVideoStrategy)

    with pytest.raises(ValidationError) as exc_info:
        strategy.validate(GenerationPayload(prompt="p"))

    assert exc_info.value.kind is ErrorKind.MISSING_IMAGE


def test_frames_to_video_passes_first_and_last_frame():
    strategy, backend = _make(FramesToVideoStrategy)
    payload = GenerationPayload(
        prompt="p",
        start_frame=ImageInput(url="https://x/a.png"),
        end_frame=ImageInput(url="https://x/b.png"),
    )
    strategy.validate(payload)
    images = ResolvedImages(start_frame=_frame("a"), end_frame=_frame("b"))

    asyncio.run(strategy.execute(strategy.build_request(payload, images), "t"))

    sent = backend.submitted[0]
    assert sent.image.filename == "a.png"
    assert sent.last_frame.filename == "b.png"


def test_references_capped():
    strategy, _ = _make(ReferencesToVideoStrategy, max_references=2)
    refs = [ImageInput(url=f"https://x/{i}.png") for i in range(3)]

    with pytest.raises(ValidationError):
        strategy.validate(GenerationPayload(prompt="p", reference_images=refs))


def test_references_optional_and_style_image_forwarded():
    strategy, backend = _make(ReferencesToVideoStrategy)
    payload = GenerationPayload(prompt="p", style_image=ImageInput(url="https://x/s.png"))
    strategy.validate(payload)
    images = ResolvedImages(reference_images=[_frame("r1")], style_image=_frame("s"))

    asyncio.run(strategy.execute(strategy.build_request(payload, images), "t"))

    sent = backend.submitted[0]
    assert [r.filename for r in sent.reference_images] == ["r1.png"]
    assert sent.style_image.filename == "s.png"


def test_extend_video_always_unsupported():
    strategy, backend = _make(ExtendVideoStrategy)

    with pytest.raises(UnsupportedModeError) as exc_info:
        strategy.validate(GenerationPayload(prompt="p"))

    assert exc_info.value.kind is ErrorKind.UNSUPPORTED_MODE
    assert exc_info.value.status_code == 500
    assert backend.submitted == []


def test_video_base_requires_gen_type():
    from promptmedia.services.strategies.video import VideoStrategy

    backend = FakeVideoBackend()
    poller = OperationPoller(backend, PollPolicy(interval=0.0, timeout=None))
    with pytest.raises(TypeError):
        VideoStrategy(backend, poller, default_model="veo")
