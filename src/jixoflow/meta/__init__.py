"""Subflows and tools behind the builtin ``meta`` workflow and tool-server."""
