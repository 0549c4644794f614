"""Declarative video model capability registry.

Defines every supported Veo model's capabilities (generation type,
duration, resolution, aspect ratio) in a single source of truth.

Usage:
    from promptmedia.services.video_registry import VIDEO_REGISTRY
    caps = VIDEO_REGISTRY.get_capabilities("veo-3.1-generate-preview")
    VIDEO_REGISTRY.validate("veo-3.1-generate-preview", gen_type="text", resolution="720p")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

GEN_TYPE_TEXT = "text"                    # Text-to-video
GEN_TYPE_SINGLE_IMAGE = "single_image"    # Start frame only
GEN_TYPE_START_END = "start_end"          # Start + end frame
GEN_TYPE_REFERENCE = "reference"          # Asset / style reference images
GEN_TYPE_EXTEND = "extend"                # Continue an existing video


@dataclass(frozen=True)
class DurationResolutionMap:
    """Allowed duration × resolution combination for a model."""
    durations: tuple[int, ...]
    resolutions: tuple[str, ...]


@dataclass(frozen=True)
class VideoModelCapability:
    """Capability descriptor for a single video model."""
    manufacturer: str
    model: str
    gen_types: tuple[str, ...]
    duration_resolution_map: tuple[DurationResolutionMap, ...]
    aspect_ratios: tuple[str, ...] = ()
    audio: bool = False


# ---------------------------------------------------------------------------
# Registry class
# ---------------------------------------------------------------------------

class VideoModelRegistry:
    """In-memory registry of all supported video models."""

    def __init__(self) -> None:
        self._models: dict[str, VideoModelCapability] = {}

    def register(self, cap: VideoModelCapability) -> None:
        self._models[cap.model] = cap

    def get_capabilities(self, model: str) -> VideoModelCapability | None:
        return self._models.get(model)

    def validate(
        self,
        model: str,
        *,
        gen_type: str,
        duration: int | None = None,
        resolution: str | None = None,
        aspect_ratio: str | None = None,
    ) -> VideoModelCapability:
        """Validate generation parameters against model capabilities.

        Returns the capability entry or raises ValueError.
        """
        cap = self.get_capabilities(model)
        if cap is None:
            raise ValueError(
                f"Unknown video model: {model}. Supported: {', '.join(sorted(self._models))}"
            )

        if gen_type not in cap.gen_types:
            raise ValueError(f"Model {model} does not support generation type '{gen_type}'")

        if duration is not None or resolution is not None:
            ok = False
            for drm in cap.duration_resolution_map:
                dur_ok = duration is None or not drm.durations or duration in drm.durations
                res_ok = resolution is None or not drm.resolutions or resolution in drm.resolutions
                if dur_ok and res_ok:
                    ok = True
                    break
            if not ok:
                raise ValueError(
                    f"Model {model} does not support "
                    f"duration={duration}, resolution={resolution}"
                )

        if aspect_ratio and cap.aspect_ratios and aspect_ratio not in cap.aspect_ratios:
            raise ValueError(
                f"Model {model} does not support aspect_ratio={aspect_ratio} "
                f"(allowed: {', '.join(cap.aspect_ratios)})"
            )

        return cap

    def to_dict_list(self) -> list[dict[str, Any]]:
        """Serialize all models for API response."""
        return [
            {
                "manufacturer": cap.manufacturer,
                "model": cap.model,
                "genTypes": list(cap.gen_types),
                "durationResolutionMap": [
                    {
                        "durations": list(drm.durations),
                        "resolutions": list(drm.resolutions),
                    }
                    for drm in cap.duration_resolution_map
                ],
                "aspectRatios": list(cap.aspect_ratios),
                "audio": cap.audio,
            }
            for cap in self._models.values()
        ]


def _cap(
    model: str,
    types: list[str],
    drm_list: list[dict],
    aspect_ratios: list[str],
    audio: bool = False,
) -> VideoModelCapability:
    """Shorthand factory for a Gemini VideoModelCapability."""
    return VideoModelCapability(
        manufacturer="gemini",
        model=model,
        gen_types=tuple(types),
        duration_resolution_map=tuple(
            DurationResolutionMap(
                durations=tuple(d["durations"]),
                resolutions=tuple(d["resolutions"]),
            )
            for d in drm_list
        ),
        aspect_ratios=tuple(aspect_ratios),
        audio=audio,
    )


# ---------------------------------------------------------------------------
# Build the global registry
# ---------------------------------------------------------------------------

VIDEO_REGISTRY = VideoModelRegistry()

_VEO3_DRM = [
    {"durations": [4, 6], "resolutions": ["720p"]},
    {"durations": [8], "resolutions": ["720p", "1080p"]},
]

VIDEO_REGISTRY.register(_cap(
    "veo-3.1-generate-preview",
    [GEN_TYPE_TEXT, GEN_TYPE_SINGLE_IMAGE, GEN_TYPE_START_END, GEN_TYPE_REFERENCE, GEN_TYPE_EXTEND],
    _VEO3_DRM, ["16:9", "9:16"], audio=True,
))

VIDEO_REGISTRY.register(_cap(
    "veo-3.1-fast-generate-preview",
    [GEN_TYPE_TEXT, GEN_TYPE_SINGLE_IMAGE, GEN_TYPE_START_END, GEN_TYPE_EXTEND],
    _VEO3_DRM, ["16:9", "9:16"], audio=True,
))

VIDEO_REGISTRY.register(_cap(
    "veo-3.0-generate-001",
    [GEN_TYPE_TEXT, GEN_TYPE_SINGLE_IMAGE],
    _VEO3_DRM, ["16:9", "9:16"], audio=True,
))

VIDEO_REGISTRY.register(_cap(
    "veo-3.0-fast-generate-001",
    [GEN_TYPE_TEXT, GEN_TYPE_SINGLE_IMAGE],
    _VEO3_DRM, ["16:9", "9:16"], audio=True,
))

VIDEO_REGISTRY.register(_cap(
    "veo-2.0-generate-001",
    [GEN_TYPE_TEXT, GEN_TYPE_SINGLE_IMAGE],
    [{"durations": [5, 6, 7, 8], "resolutions": ["720p"]}],
    ["16:9", "9:16"],
))


logger.debug("Video registry initialized: %d models", len(VIDEO_REGISTRY._models))
