"""Rendering pipeline: request-context simulation, strategy selection, caching."""
