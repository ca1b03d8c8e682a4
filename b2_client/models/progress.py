"""
Progress event model.
"""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class ProgressEvent:
    """
    Attributes:
        loaded: Bytes transferred so far.
        total: Total bytes, 0 when unknown.
        length_computable: Whether ``total`` is known.
        fraction: Completion in [0, 1]; 0 when the total is unknown or zero.
        percentage: ``fraction`` as a rounded integer percentage.
    """

    loaded: int
    total: int
    length_computable: bool
    fraction: float
    percentage: int

    @classmethod
    def compute(cls, loaded: int, total: int) -> "ProgressEvent":
        length_computable = total > 0
        fraction = min(loaded / total, 1.0) if length_computable else 0.0
        return cls(
            loaded=loaded,
            total=total,
            length_computable=length_computable,
            fraction=fraction,
            percentage=int(fraction * 100 + 0.5),
        )
