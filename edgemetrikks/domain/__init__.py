from .requests.models import EdgeRequest

__all__ = [
    "EdgeRequest",
]
