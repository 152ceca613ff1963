"""User-agent module - best-effort browser/OS/device parsing."""
from .useragent import UserAgentParser

__all__ = ["UserAgentParser"]
