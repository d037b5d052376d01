"""
Worker module.
Contains the queue consumer loop.
"""

from leasequeue.worker.main import MessageHandler, Worker, run

__all__ = ["Worker", "MessageHandler", "run"]
