"""Workspace dependency graph engine: detection, ordering and change tracking."""
