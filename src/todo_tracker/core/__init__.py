"""Ports, shared state and the error taxonomy."""
