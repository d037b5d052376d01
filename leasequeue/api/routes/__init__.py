"""
API routes module.
"""

from leasequeue.api.routes.health import router as health_router
from leasequeue.api.routes.queues import router as queues_router

__all__ = ["queues_router", "health_router"]
