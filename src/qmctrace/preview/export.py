"""Image export utilities for rendered images.

Saves 8-bit sRGB PNG files through Pillow, after tone mapping and gamma
correction, and names frames of an animation.

Example:
    >>> from qmctrace.preview.export import frame_filename, save_png
    >>> save_png(renderer, frame_filename("orbit_{frame:04d}.png", 7), tone_map="reinhard")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from qmctrace.preview.display import ToneMapMethod, process_image_for_display

if TYPE_CHECKING:
    from qmctrace.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float32 image to uint8 for display/export.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return (processed * 255).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save a linear image array as an 8-bit sRGB PNG file.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).

    Raises:
        ValueError: If the image is not of shape (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")

    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8).save(filepath)
    logger.info("Saved %s (%dx%d)", filepath, image.shape[1], image.shape[0])


def save_png(
    renderer: ProgressiveRenderer,
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save the renderer's current image as a PNG file.

    The linear (unclamped) image is used so tone mapping sees HDR values.

    Args:
        renderer: The ProgressiveRenderer instance to save.
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).
    """
    save_png_from_array(
        renderer.get_linear_image(),
        filepath,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )


def frame_filename(pattern: str, frame: int) -> str:
    """Output file name for one animation frame.

    The pattern is a ``str.format`` template with a ``frame`` field, e.g.
    ``"orbit_{frame:04d}.png"``. A pattern without the field gets the
    zero-padded frame number inserted before its extension.

    Args:
        pattern: File name template.
        frame: Frame index.

    Returns:
        The file name for the frame.
    """
    if "{frame" in pattern:
        return pattern.format(frame=frame)

    stem, dot, ext = pattern.rpartition(".")
    if not dot:
        return f"{pattern}_{frame:04d}"
    return f"{stem}_{frame:04d}.{ext}"


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
