"""
FastAPI integration module.

Exposes container resolution to FastAPI endpoints through Depends().
"""

from .integration import ContainerMiddleware, create_fastapi_dependency, create_request_dependency

__all__ = [
    "ContainerMiddleware",
    "create_fastapi_dependency",
    "create_request_dependency",
]
