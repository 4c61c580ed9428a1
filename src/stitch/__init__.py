"""
Smart Stitch client-side resource cache.

Sits between every consumer and the remote API: caches per-resource
payloads with a bounded staleness window, guards against duplicate
in-flight requests and tears down with the session.
"""

__version__ = "0.1.0"
