"""
Change Tracking

Watches the workspace and republishes the dependency graph when manifests
or sources change (see coordinator.py).
"""
