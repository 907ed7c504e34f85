"""
Provider-safe output sizes

Removal providers only accept integer sides inside [min_side, max_side]
that are multiples of `step`. The resolver keeps the source aspect ratio
and snaps to the closest valid size, never upscaling before snapping.
"""
import math
from dataclasses import dataclass
from typing import Optional

import config

from .errors import ProviderConstraintError


@dataclass(frozen=True)
class ProviderConstraints:
    """Size limits of a removal provider"""
    min_side: int
    max_side: int
    step: int

    @property
    def lowest(self) -> int:
        """Smallest multiple of step inside [min_side, max_side]"""
        return math.ceil(self.min_side / self.step) * self.step

    @property
    def highest(self) -> int:
        """Largest multiple of step inside [min_side, max_side]"""
        return (self.max_side // self.step) * self.step

    def validate(self) -> None:
        if self.step <= 0 or self.min_side <= 0 or self.max_side <= 0:
            raise ProviderConstraintError(
                "Provider constraints must be positive.", meta=self.to_dict()
            )
        if self.min_side > self.max_side or self.lowest > self.highest:
            raise ProviderConstraintError(
                "Provider constraints admit no valid size.", meta=self.to_dict()
            )

    def to_dict(self) -> dict:
        return {"min_side": self.min_side, "max_side": self.max_side, "step": self.step}

    @classmethod
    def for_provider(cls, provider: Optional[str] = None) -> "ProviderConstraints":
        """
        Load constraints from the configured provider registry

        Raises:
            ProviderConstraintError: If the provider is unknown
        """
        provider = provider or config.DEFAULT_PROVIDER
        data = config.get_provider_constraints(provider)
        if data is None:
            raise ProviderConstraintError(
                f"Unknown removal provider: '{provider}'",
                meta={"provider": provider, "available": list(config.PROVIDER_CONSTRAINTS)},
            )
        return cls(**data)


@dataclass(frozen=True)
class TargetSize:
    """Output size and the per-axis scale from the source"""
    width: int
    height: int
    scale_x: float
    scale_y: float

    @property
    def size(self) -> tuple:
        return (self.width, self.height)

    @property
    def stroke_scale(self) -> float:
        """Scale for brush widths; averaged so round brushes stay round"""
        return (self.scale_x + self.scale_y) / 2

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "scale_x": self.scale_x,
            "scale_y": self.scale_y,
        }


def _round_half_up(n: float) -> int:
    return int(math.floor(n + 0.5))


def _snap(n: float, constraints: ProviderConstraints) -> int:
    step = constraints.step
    stepped = _round_half_up(_round_half_up(n) / step) * step
    return min(constraints.highest, max(constraints.lowest, stepped))


def resolve_safe_size(
    source_width: float,
    source_height: float,
    constraints: ProviderConstraints,
) -> TargetSize:
    """
    Quantize a source size to provider constraints

    Args:
        source_width: Source width in pixels
        source_height: Source height in pixels
        constraints: Provider size limits

    Returns:
        TargetSize with both sides multiples of step inside the limits

    Raises:
        ProviderConstraintError: On a non-positive source size or invalid constraints
    """
    constraints.validate()

    try:
        w0 = _round_half_up(float(source_width))
        h0 = _round_half_up(float(source_height))
    except (TypeError, ValueError, OverflowError) as e:
        raise ProviderConstraintError(
            "Invalid source size.", cause=e,
            meta={"width": source_width, "height": source_height},
        ) from e
    if w0 <= 0 or h0 <= 0:
        raise ProviderConstraintError(
            "Invalid source size.", meta={"width": source_width, "height": source_height}
        )

    aspect = w0 / h0
    max_side = constraints.highest

    # Scale down to fit; never up
    scale_down = min(1.0, constraints.max_side / max(w0, h0))
    w1 = w0 * scale_down
    h1 = h0 * scale_down

    if w1 >= h1:
        width = _snap(w1, constraints)
        height = _snap(width / aspect, constraints)
    else:
        height = _snap(h1, constraints)
        width = _snap(height * aspect, constraints)

    if width > max_side:
        width = max_side
        height = _snap(width / aspect, constraints)
    if height > max_side:
        height = max_side
        width = _snap(height * aspect, constraints)

    return TargetSize(
        width=width,
        height=height,
        scale_x=width / w0,
        scale_y=height / h0,
    )
