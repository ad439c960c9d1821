"""Preview module for output of rendered images.

Components:
    display: Tone mapping and gamma correction
    export: PNG export and animation frame naming

Example:
    >>> from qmctrace.preview import save_png
    >>> from qmctrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(512, 512)
    >>> renderer.render(100)
    >>> save_png(renderer, "output.png", tone_map="reinhard", gamma=2.2)
"""

from qmctrace.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from qmctrace.preview.export import (
    compute_rmse,
    frame_filename,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
    "frame_filename",
]
