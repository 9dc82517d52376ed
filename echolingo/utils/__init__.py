"""Utility helpers package."""

from echolingo.utils.cache import ProviderCache, cache_backend, build_cache_key

__all__ = ["ProviderCache", "cache_backend", "build_cache_key"]
