from .registry import get_provider, register_provider

__all__ = ["get_provider", "register_provider"]
