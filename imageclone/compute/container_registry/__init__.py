from ._models import CopyResult
from .component import ContainerRegistry

__all__ = [
    "ContainerRegistry",
    "CopyResult",
]
