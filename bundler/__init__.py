# minipack - Core Bundler Components
"""
Core modules for the minipack bundler:
- errors: Build errors with file, line and hint
- grammar: Lark grammar for ECMAScript module syntax
- parser: Source text to parse tree, dependency extraction
- transformer: ES module syntax to the (require, module, exports) convention
- scope: References to imported names, rewritten so bindings stay live
- asset: One source file as a graph node
- graph: Breadth-first dependency graph construction
- codegen: Module table plus runtime loader
- runtime: The JavaScript loader inlined into bundles
- config: Build options (minipack.json)
- pipeline: The entry -> bundle pipeline
"""

from .errors import BuildError, CycleError, FileAccessError, ParseError, TransformError
from .asset import Asset, create_asset
from .graph import create_graph
from .codegen import bundle
from .config import BundleConfig, load_config
from .pipeline import build

__all__ = [
    'BuildError',
    'CycleError',
    'FileAccessError',
    'ParseError',
    'TransformError',
    'Asset',
    'create_asset',
    'create_graph',
    'bundle',
    'BundleConfig',
    'load_config',
    'build',
]
