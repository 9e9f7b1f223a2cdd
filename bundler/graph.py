"""
Dependency graph construction.

Starting from an entry file, every file reachable through static imports is
turned into an asset. The graph is the list of those assets in the order
they were discovered (breadth-first), so the entry asset is always first
and always has id 0.
"""
import itertools
import os
from typing import List

from bundler.asset import Asset, create_asset
from bundler.config import BundleConfig
from bundler.errors import CycleError
from bundler.log import debug_log

Graph = List[Asset]

_VISITING, _DONE = 1, 2


def resolve_specifier(dirname, specifier):
    """Join a specifier to the importing file's directory. Nothing else is tried."""
    return os.path.normpath(os.path.join(dirname, specifier))


def create_graph(entry, config=None):
    """
    Build the dependency graph of an entry file.

    Each resolved path gets exactly one asset: a file imported from several
    places is built once and every importer maps to the same id.

    Args:
        entry: Path of the entry file, relative or absolute
        config: BundleConfig (source type, presets, allow_cycles)

    Returns:
        List of assets in discovery order, each with a complete mapping

    Raises:
        FileAccessError, ParseError, TransformError: From any asset; the build stops
        CycleError: If imports loop and config.allow_cycles is off
    """
    config = config or BundleConfig()
    ids = itertools.count()  # ids belong to this build only

    def build(file_path):
        asset = create_asset(file_path, ids, source_type=config.source_type, presets=config.presets)
        debug_log(f"Asset {asset.id}: {asset.file_path} ({len(asset.dependencies)} dependencies)")
        return asset

    main_asset = build(entry)
    queue = [main_asset]
    by_path = {main_asset.file_path: main_asset}

    # The iterator keeps going over assets appended while the loop runs
    for asset in queue:
        dirname = os.path.dirname(asset.file_path)

        for specifier in asset.dependencies:
            absolute_path = resolve_specifier(dirname, specifier)

            child = by_path.get(absolute_path)
            if child is None:
                child = build(absolute_path)
                by_path[absolute_path] = child
                queue.append(child)
            else:
                debug_log(f"Reusing asset {child.id} for '{specifier}' in {asset.file_path}")

            asset.mapping[specifier] = child.id

    if not config.allow_cycles:
        cycle = find_cycle(queue)
        if cycle:
            raise CycleError([queue[asset_id].file_path for asset_id in cycle])

    debug_log(f"Graph complete: {len(queue)} assets")
    return queue


def find_cycle(graph):
    """
    Find one circular import chain in a graph.

    The search keeps its own stack, so import chains of any length are fine.

    Returns:
        List of asset ids where the last id repeats an earlier one
        (e.g. [0, 1, 0]), or None when the graph is acyclic
    """
    by_id = {asset.id: asset for asset in graph}
    state = {}

    def children(asset_id):
        asset = by_id[asset_id]
        return iter([asset.mapping[specifier] for specifier in asset.dependencies])

    for asset in graph:
        if asset.id in state:
            continue
        state[asset.id] = _VISITING
        path = [asset.id]
        stack = [children(asset.id)]
        while stack:
            child_id = next(stack[-1], None)
            if child_id is None:
                state[path.pop()] = _DONE
                stack.pop()
            elif state.get(child_id) == _VISITING:
                return path[path.index(child_id):] + [child_id]
            elif child_id not in state:
                state[child_id] = _VISITING
                path.append(child_id)
                stack.append(children(child_id))
    return None
