"""Networking building blocks: addresses, file descriptors, sockets, an event loop and buffer parsing."""

__version__ = "0.1.0"