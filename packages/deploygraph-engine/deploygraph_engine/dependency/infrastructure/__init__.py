"""
Dependency Infrastructure

Graph construction stages and their adapters.
"""

from deploygraph_engine.dependency.infrastructure.edge_merger import EdgeMerger
from deploygraph_engine.dependency.infrastructure.edge_resolver import EdgeResolver
from deploygraph_engine.dependency.infrastructure.graph_assembler import GraphAssembler
from deploygraph_engine.dependency.infrastructure.graph_cache import GraphCache
from deploygraph_engine.dependency.infrastructure.import_scanner import ImportScanner
from deploygraph_engine.dependency.infrastructure.local_filesystem import LocalFileSystem

__all__ = [
    "EdgeMerger",
    "EdgeResolver",
    "GraphAssembler",
    "GraphCache",
    "ImportScanner",
    "LocalFileSystem",
]
