"""Image derivative generation."""

from image_variants.derivatives.generator import DerivativeGenerator, target_dimensions

__all__ = [
    "DerivativeGenerator",
    "target_dimensions",
]
