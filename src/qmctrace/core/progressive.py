"""Progressive renderer for iterative pass accumulation.

This module wraps the integrator's render target with:
- Successive pass indices per frame (the Halton point index)
- Batch rendering with progress callbacks
- A generator form for cooperative cancellation between batches
- Frame selection for animated orbits

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from qmctrace.core.integrator import setup_integrator
    >>> from qmctrace.core.progressive import ProgressiveRenderer
    >>> from qmctrace.scene.reference import create_reference_scene
    >>>
    >>> scene, config = create_reference_scene()
    >>> setup_integrator(config)
    >>>
    >>> renderer = ProgressiveRenderer(320, 240, frames=60)
    >>> renderer.set_frame(15)
    >>> renderer.render(64)
    >>> renderer.save_image("frame_0015.png")
"""

import logging
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from qmctrace.core.integrator import (
    clear_render_target,
    get_linear_image_numpy,
    get_normalized_image_numpy,
    get_total_samples,
    render_pass,
    setup_render_target,
)

logger = logging.getLogger(__name__)

# Callback receives (current_passes, target_passes)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Accumulates passes of one animation frame into the render target.

    Pass indices start at 0 after construction, reset(), resize() and
    set_frame(), and increase by one per rendered pass. Rendering the same
    frame with the same number of passes therefore always produces the same
    image.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        frames: Total animation frames; <= 0 for a static camera.
        frame: The frame being accumulated.
    """

    def __init__(self, width: int, height: int, frames: int = 0) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            frames: Total animation frames; <= 0 for a static camera.

        Raises:
            ValueError: If dimensions are invalid.
        """
        self._width = width
        self._height = height
        self._frames = frames
        self._frame = 0
        self._next_pass = 0
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def frames(self) -> int:
        """Get the total number of animation frames."""
        return self._frames

    @property
    def frame(self) -> int:
        """Get the frame being accumulated."""
        return self._frame

    @property
    def sample_count(self) -> int:
        """Get the number of passes accumulated per pixel."""
        return get_total_samples()

    def set_frame(self, frame: int, frames: int | None = None) -> None:
        """Switch to another animation frame and reset the accumulator.

        Args:
            frame: Frame index to accumulate.
            frames: Optional new total frame count.
        """
        self._frame = frame
        if frames is not None:
            self._frames = frames
        self.reset()
        logger.debug("Switched to frame %d of %d", self._frame, self._frames)

    def reset(self) -> None:
        """Clear the accumulator and restart pass indices at 0."""
        clear_render_target()
        self._next_pass = 0

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset accumulator.

        Args:
            width: New image width in pixels.
            height: New image height in pixels.

        Raises:
            ValueError: If dimensions are invalid.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self._next_pass = 0
        logger.debug("Resized render target to %dx%d", width, height)

    def _render_one_pass(self) -> None:
        render_pass(self._frame, self._next_pass, self._frames)
        self._next_pass += 1

    def render(
        self,
        num_passes: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render passes and fold them into the current image.

        Can be called repeatedly to keep refining the image.

        Args:
            num_passes: Number of passes to add.
            batch_size: Passes rendered between callbacks.
            callback: Optional function called after each batch with
                (current_passes, target_passes).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} passes")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_passes, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_passes: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render passes, yielding progress after each batch.

        Stopping iteration early leaves a valid image with fewer passes.

        Args:
            num_passes: Number of passes to add.
            batch_size: Passes rendered before each yield.

        Yields:
            Tuple of (current_passes, target_passes).
        """
        if num_passes <= 0:
            return
        if batch_size <= 0:
            raise ValueError(f"batch_size = {batch_size} must be positive")

        target_passes = self._next_pass + num_passes
        logger.debug(
            "Rendering frame %d: passes %d..%d",
            self._frame,
            self._next_pass,
            target_passes - 1,
        )

        remaining = num_passes
        while remaining > 0:
            batch = min(batch_size, remaining)
            for _ in range(batch):
                self._render_one_pass()
            remaining -= batch
            yield (self._next_pass, target_passes)

    def get_linear_image(self) -> npt.NDArray[np.float32]:
        """Get the unclamped running mean, shape (height, width, 3)."""
        return get_linear_image_numpy()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Values are clamped to [0, 1] and optionally gamma corrected.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.
        """
        image = get_normalized_image_numpy()

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma).astype(np.float32)

        return image

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an 8-bit array of shape (height, width, 3)."""
        image = self.get_image_numpy(gamma=gamma)
        return (image * 255).astype(np.uint8)

    def save_image(self, filepath: str, gamma: float = 2.2) -> None:
        """Save the rendered image to a file.

        Args:
            filepath: Path to save the image (e.g., "output.png").
            gamma: Gamma correction value. Default 2.2 for sRGB.
        """
        from PIL import Image as PILImage

        pil_image = PILImage.fromarray(self.get_image_uint8(gamma=gamma))
        pil_image.save(filepath)
        logger.info("Saved %s (%d passes)", filepath, self._next_pass)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"frame={self.frame}, frames={self.frames}, samples={self.sample_count})"
        )
