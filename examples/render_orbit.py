#!/usr/bin/env python3
"""Render the reference scene from an orbiting camera.

Renders each frame of a camera orbit around the reference scene with
progressive refinement and writes one PNG per frame.

Usage:
    python -m examples.render_orbit [options]

Options:
    --width WIDTH         Image width in pixels (default: 320)
    --height HEIGHT       Image height in pixels (default: 240)
    --passes PASSES       Passes per pixel per frame (default: 64)
    --frames FRAMES       Frames in the orbit; 0 renders a static image (default: 0)
    --max-bounces N       Diffuse bounces per path (default: 3)
    --output PATTERN      Output file pattern (default: orbit_{frame:04d}.png)
    --tone-map METHOD     none, reinhard or exposure (default: reinhard)
    --batch-size SIZE     Passes per progress update (default: 8)
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python -m examples.render_orbit --frames 60 --passes 32 --output out/orbit_{frame:04d}.png
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

import taichi as ti


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the reference scene from an orbiting camera.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=320,
        help="Image width in pixels (default: 320)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=240,
        help="Image height in pixels (default: 240)",
    )
    parser.add_argument(
        "--passes",
        type=int,
        default=64,
        help="Passes per pixel per frame (default: 64)",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=0,
        help="Frames in the orbit; 0 renders a static image (default: 0)",
    )
    parser.add_argument(
        "--max-bounces",
        type=int,
        default=3,
        help="Diffuse bounces per path (default: 3)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="orbit_{frame:04d}.png",
        help="Output file pattern (default: orbit_{frame:04d}.png)",
    )
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="reinhard",
        help="Tone mapping method (default: reinhard)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=8,
        help="Passes per progress update (default: 8)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def render_orbit(
    width: int = 320,
    height: int = 240,
    num_passes: int = 64,
    frames: int = 0,
    max_bounces: int = 3,
    output_pattern: str = "orbit_{frame:04d}.png",
    tone_map: str = "reinhard",
    batch_size: int = 8,
    quiet: bool = False,
) -> list[Path]:
    """Render every frame of the orbit and save them to files.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        num_passes: Passes per pixel per frame.
        frames: Frames in the orbit; 0 renders one static image.
        max_bounces: Diffuse bounces per path.
        output_pattern: File name pattern with a ``{frame}`` field.
        tone_map: Tone mapping method.
        batch_size: Passes rendered between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Paths of the saved images, in frame order.
    """
    # Lazy imports to allow Taichi initialization first
    from qmctrace.core.integrator import setup_integrator
    from qmctrace.core.progressive import ProgressiveRenderer
    from qmctrace.preview.export import frame_filename, save_png
    from qmctrace.scene.reference import create_reference_scene

    if not quiet:
        print(f"Creating reference scene ({width}x{height})...")

    scene, config = create_reference_scene()
    setup_integrator(replace(config, max_bounces=max_bounces))

    renderer = ProgressiveRenderer(width, height, frames=frames)
    frame_count = max(frames, 1)
    outputs: list[Path] = []

    start_time = time.time()

    for frame in range(frame_count):
        renderer.set_frame(frame)
        frame_start = time.time()

        def progress_callback(current: int, target: int) -> None:
            if not quiet:
                elapsed = time.time() - frame_start
                passes_per_sec = current / elapsed if elapsed > 0 else 0
                print(
                    f"\r  Frame {frame + 1}/{frame_count}: {current}/{target} passes "
                    f"- {passes_per_sec:.1f} passes/s",
                    end="",
                    flush=True,
                )

        renderer.render(
            num_passes=num_passes,
            batch_size=batch_size,
            callback=progress_callback,
        )

        output_file = Path(frame_filename(output_pattern, frame))
        output_file.parent.mkdir(parents=True, exist_ok=True)
        save_png(renderer, str(output_file), tone_map=tone_map, gamma=2.2)
        outputs.append(output_file)

        if not quiet:
            print()  # Newline after progress
            print(f"  Saved to: {output_file.absolute()}")

    if not quiet:
        print(f"Total time: {time.time() - start_time:.2f}s")

    return outputs


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
        if not args.quiet:
            print("Using GPU backend")
    except Exception:
        ti.init(arch=ti.cpu)
        if not args.quiet:
            print("Using CPU backend")

    try:
        render_orbit(
            width=args.width,
            height=args.height,
            num_passes=args.passes,
            frames=args.frames,
            max_bounces=args.max_bounces,
            output_pattern=args.output,
            tone_map=args.tone_map,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
