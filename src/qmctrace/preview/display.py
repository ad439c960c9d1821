"""Display processing for rendered images.

Tone mapping and gamma correction that turn the linear running mean into a
displayable [0, 1] image.

Example:
    >>> from qmctrace.preview.display import process_image_for_display
    >>> display = process_image_for_display(renderer.get_linear_image(), tone_map="reinhard")
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1) range.
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure-based tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Exposure value. Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1) range.
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Apply gamma encoding ``out = in ** (1 / gamma)``.

    Input is clamped to [0, 1] first. A gamma of 1.0 returns the input as is.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma = {gamma} must be positive")
    if gamma == 1.0:
        return image

    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Process an image for display with tone mapping and gamma correction.

    Pipeline:
    1. Tone mapping (optional, for HDR content)
    2. Gamma correction (for sRGB display)
    3. Clamping to [0, 1]

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping (default 1.0).

    Returns:
        Processed image in [0, 1] range.

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    result = image.copy()

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)

    return np.clip(result, 0.0, 1.0).astype(np.float32)
