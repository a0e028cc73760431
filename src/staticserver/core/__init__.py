"""
Core networking and concurrency components.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  listener.py     bind() + accept loop, feeds the pool               │
    │  worker_pool.py  fixed worker threads over a bounded FIFO queue     │
    │  connection.py   one client socket: read line, send, close          │
    └─────────────────────────────────────────────────────────────────────┘

Nothing here knows about HTTP. The pool calls whatever handler it is
given with each Connection.
"""

from .connection import Connection, ConnectionState
from .listener import Listener, bind
from .worker_pool import WorkerPool, WorkItem, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "Listener",
    "bind",
    "WorkerPool",
    "WorkItem",
    "WorkerState",
]
