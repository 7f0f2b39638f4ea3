"""Install plan building and execution."""

from .backend import Backend, SharedState
from .tasks import build_plan


__all__ = ["Backend", "SharedState", "build_plan"]
