"""Deterministic low-discrepancy sampler.

Samples are built from two independent pieces:

1. A per-pixel, per-frame offset. The linear index
   ``frame * width * height + y * width + x`` is scrambled with Thomas Wang's
   integer hash and mapped to a float in [0, 1). The offset does not depend
   on the pass index, so it stays fixed while a pixel converges.
2. A Halton point for the pass index: the radical inverse of the pass in a
   prime base chosen by the sample dimension.

The Halton value is shifted by the pixel offset modulo 1 (Cranley-Patterson
rotation). Neighbouring pixels therefore see decorrelated sequences while
successive passes of one pixel keep the low discrepancy of the Halton set.

Dimension layout for one path:
    0, 1: sub-pixel jitter (x, y)
    2: time jitter within the animation frame
    3 + 2 * bounce + k (k in {0, 1}): bounce direction for bounce >= 1

Dimensions index the configured prime table modulo its length.

Nothing in this module holds per-sample state; all functions are pure.
"""

import logging
from collections.abc import Sequence

import taichi as ti

from qmctrace.core.config import MAX_PRIMES

logger = logging.getLogger(__name__)

# Largest single precision float below 1.0 (0x1.fffffep-1)
ONE_MINUS_EPSILON = 0.99999994039535522

# Thomas Wang hash constants
HASH_SEED = 12345391
HASH_MULTIPLIER = 2654435769

# HASH_MULTIPLIER does not fit an i32 literal; same bits as a signed value
_HASH_MULTIPLIER_SIGNED = HASH_MULTIPLIER - (1 << 32)

# Exponent bits of 1.0f, OR-ed onto a 23-bit mantissa
FLOAT_ONE_BITS = 0x3F800000

# Number of sampler dimensions consumed before the first bounce
PRIMARY_DIMENSIONS = 3

# Prime bases for the radical inverse, indexed by dimension
_primes = ti.field(dtype=ti.i32, shape=MAX_PRIMES)
_num_primes = ti.field(dtype=ti.i32, shape=())


def setup_sampler(primes: Sequence[int]) -> None:
    """Upload the prime bases used by sample_dimension().

    Args:
        primes: Radical inverse bases, cycled by dimension index.

    Raises:
        ValueError: If the table is empty, too long, or holds a base below 2.
    """
    if not 1 <= len(primes) <= MAX_PRIMES:
        raise ValueError(f"Between 1 and {MAX_PRIMES} prime bases required, got {len(primes)}")
    for i, base in enumerate(primes):
        if base < 2:
            raise ValueError(f"Radical inverse base {base} must be >= 2")
        _primes[i] = int(base)
    _num_primes[None] = len(primes)
    logger.debug("Sampler bases set to %s", tuple(primes))


def get_sampler_bases() -> tuple[int, ...]:
    """Return the prime bases currently uploaded to the sampler."""
    return tuple(int(_primes[i]) for i in range(int(_num_primes[None])))


# =============================================================================
# Integer Hash
# =============================================================================


@ti.func
def hash_u32(value: ti.u32) -> ti.u32:
    """Thomas Wang's 32-bit integer hash.

    All arithmetic wraps modulo 2^32. See
    https://burtleburtle.net/bob/hash/integer.html

    Args:
        value: The integer to scramble.

    Returns:
        A well-mixed 32-bit value.
    """
    multiplier = ti.cast(_HASH_MULTIPLIER_SIGNED, ti.u32)
    x = ti.cast(value, ti.u32)
    x = (x ^ ti.u32(HASH_SEED)) * multiplier
    x ^= (x << ti.u32(6)) ^ ti.bit_shr(x, ti.u32(26))
    x *= multiplier
    x += (x << ti.u32(5)) ^ ti.bit_shr(x, ti.u32(12))
    return x


@ti.func
def uint_to_unit_float(value: ti.u32) -> ti.f32:
    """Map a 32-bit integer to a float in [0, 1).

    The top 23 bits become the mantissa of a float in [1, 2), then 1 is
    subtracted. The result is exact and never reaches 1.0.
    """
    bits = ti.bit_shr(ti.cast(value, ti.u32), ti.u32(9)) | ti.u32(FLOAT_ONE_BITS)
    return ti.bit_cast(bits, ti.f32) - 1.0


@ti.func
def pixel_hash(x: ti.i32, y: ti.i32, frame: ti.i32, width: ti.i32, height: ti.i32) -> ti.f32:
    """Per-pixel, per-frame rotation offset in [0, 1).

    The linear index is formed in unsigned arithmetic so very long animations
    wrap instead of overflowing.
    """
    w = ti.cast(width, ti.u32)
    h = ti.cast(height, ti.u32)
    index = ti.cast(frame, ti.u32) * w * h + ti.cast(y, ti.u32) * w + ti.cast(x, ti.u32)
    return uint_to_unit_float(hash_u32(index))


# =============================================================================
# Radical Inverse
# =============================================================================


@ti.func
def radical_inverse(index: ti.i32, base: ti.i32) -> ti.f32:
    """Reverse the base-``base`` digits of ``index`` about the radix point.

    For base 2 the sequence 1, 2, 3, 4 maps to 0.5, 0.25, 0.75, 0.125.
    The result is clamped to ONE_MINUS_EPSILON so it never rounds up to 1.0.

    Args:
        index: Non-negative integer (the pass index).
        base: Integer base >= 2.

    Returns:
        The radical inverse in [0, 1).
    """
    inv_base = 1.0 / ti.cast(base, ti.f32)
    reversed_digits = 0
    inv_base_n = 1.0
    n = index
    while n != 0:
        next_n = n // base
        digit = n - base * next_n
        reversed_digits = reversed_digits * base + digit
        inv_base_n *= inv_base
        n = next_n
    return ti.min(ti.cast(reversed_digits, ti.f32) * inv_base_n, ONE_MINUS_EPSILON)


@ti.func
def wrap01(u: ti.f32, v: ti.f32) -> ti.f32:
    """Add two numbers in [0, 1) modulo 1."""
    s = u + v
    return ti.select(s < 1.0, s, s - 1.0)


# =============================================================================
# Sample Generation
# =============================================================================


@ti.func
def sample_dimension(pass_index: ti.i32, dimension: ti.i32, hash_random: ti.f32) -> ti.f32:
    """Sample value in [0, 1) for one pass and one dimension.

    Args:
        pass_index: Index of the pass (sample number) for this pixel.
        dimension: Sample dimension, see the module docstring for the layout.
        hash_random: The pixel offset from pixel_hash().

    Returns:
        The rotated radical inverse of pass_index.
    """
    base = _primes[dimension % _num_primes[None]]
    return wrap01(radical_inverse(pass_index, base), hash_random)


@ti.func
def bounce_dimension(bounce: ti.i32, component: ti.i32) -> ti.i32:
    """Sample dimension for one component (0 or 1) of a bounce direction."""
    return PRIMARY_DIMENSIONS + 2 * bounce + component


# =============================================================================
# Python-side Probes
# =============================================================================


@ti.kernel
def _pixel_hash_kernel(x: ti.i32, y: ti.i32, frame: ti.i32, width: ti.i32, height: ti.i32) -> ti.f32:
    return pixel_hash(x, y, frame, width, height)


@ti.kernel
def _radical_inverse_kernel(index: ti.i32, base: ti.i32) -> ti.f32:
    return radical_inverse(index, base)


@ti.kernel
def _sample_kernel(pass_index: ti.i32, dimension: ti.i32, hash_random: ti.f32) -> ti.f32:
    return sample_dimension(pass_index, dimension, hash_random)


def pixel_hash_value(x: int, y: int, frame: int, width: int, height: int) -> float:
    """Python-callable pixel_hash(), for inspection and testing."""
    return float(_pixel_hash_kernel(x, y, frame, width, height))


def radical_inverse_value(index: int, base: int) -> float:
    """Python-callable radical_inverse()."""
    return float(_radical_inverse_kernel(index, base))


def sample_value(pass_index: int, dimension: int, hash_random: float) -> float:
    """Python-callable sample_dimension() using the uploaded prime bases.

    Raises:
        RuntimeError: If setup_sampler() has not been called.
    """
    if _num_primes[None] == 0:
        raise RuntimeError("Sampler not set up. Call setup_sampler() first.")
    return float(_sample_kernel(pass_index, dimension, hash_random))
