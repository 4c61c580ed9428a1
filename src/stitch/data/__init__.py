"""
Backend API package.

The reference client for the remote REST API used by the orchestrator.
"""

from stitch.data.backend import BackendAPI

__all__ = ["BackendAPI"]
