"""
Assets - the graph's unit: one source file, parsed and transformed.
"""
import os
from typing import Dict, List

from pydantic import BaseModel, Field

from bundler.errors import FileAccessError
from bundler.parser import collect_dependencies, parse_module
from bundler.transformer import DEFAULT_PRESETS, transform_module


class Asset(BaseModel):
    """One source file as a node of the dependency graph."""
    id: int
    file_path: str
    dependencies: List[str]
    # specifier -> id, filled in by the graph builder
    mapping: Dict[str, int] = Field(default_factory=dict)
    code: str


def read_source(file_path):
    """Read a source file as text, dropping a leading byte-order mark."""
    try:
        with open(file_path, 'r', encoding='utf-8-sig') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
        raise FileAccessError(
            f"Cannot read {file_path}: {reason}",
            file_path=file_path,
            suggestion="Import specifiers are joined to the importing file's directory as written; "
                       "include the file extension",
        ) from e


def create_asset(file_path, ids, source_type="module", presets=DEFAULT_PRESETS):
    """
    Build the asset for one file.

    Args:
        file_path: Path of the source file (made absolute)
        ids: Iterator handing out asset ids for the current build
        source_type: Parser dialect hint, 'module' or 'script'
        presets: Transformer presets used to produce the asset's code

    Returns:
        Asset with an empty mapping

    Raises:
        FileAccessError, ParseError, TransformError
    """
    file_path = os.path.abspath(file_path)
    content = read_source(file_path)

    parsed = parse_module(content, source_type=source_type, file_path=file_path)
    dependencies = collect_dependencies(parsed)

    asset_id = next(ids)
    code = transform_module(parsed, presets)

    return Asset(id=asset_id, file_path=file_path, dependencies=dependencies, code=code)
