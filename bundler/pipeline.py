"""
Build pipeline: entry file -> graph -> bundle text.
"""
import os

from bundler.codegen import bundle
from bundler.config import BundleConfig
from bundler.graph import create_graph
from bundler.log import debug_log


def build(entry=None, config=None):
    """
    Bundle an entry file and everything it imports.

    Args:
        entry: Entry file path; defaults to config.entry
        config: BundleConfig, defaults when omitted

    Returns:
        The bundle as JavaScript source

    Raises:
        BuildError: Any file-access, parse, transform or cycle error
    """
    config = config or BundleConfig()
    entry = entry or config.entry
    if not entry:
        raise ValueError("No entry file: pass one or set 'entry' in minipack.json")

    debug_log(f"Building {entry}")
    graph = create_graph(entry, config)
    code = bundle(graph, cache=config.cache)
    debug_log(f"Bundled {len(graph)} modules ({len(code)} characters)")
    return code


def describe_graph(graph, base_dir=None):
    """JSON-ready summary of a graph: one dict per asset, paths relative to base_dir."""
    base_dir = base_dir or os.getcwd()
    return [
        {
            "id": asset.id,
            "file": os.path.relpath(asset.file_path, base_dir),
            "dependencies": list(asset.dependencies),
            "mapping": dict(asset.mapping),
        }
        for asset in graph
    ]
