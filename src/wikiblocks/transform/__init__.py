from .macro import (
    MacroFailure,
    MacroTransformation,
    MacroTransformationContext,
    TransformationResult,
    Truncation,
)

__all__ = [
    "MacroFailure",
    "MacroTransformation",
    "MacroTransformationContext",
    "TransformationResult",
    "Truncation",
]
