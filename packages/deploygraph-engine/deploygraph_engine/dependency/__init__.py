"""
Dependency Detection

Layers:
- domain/: immutable models, capability ports, naming rules, read-only queries
- infrastructure/: resolver, import scanner, merger, assembler, cache
- service.py: DependencyDetectionService facade
"""
