"""
Build configuration.

Options come from a ``minipack.json`` file and from keyword overrides (the
command line); both are validated by the same pydantic model.
"""
import json
import os
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from bundler.transformer import DEFAULT_PRESETS

CONFIG_FILE = "minipack.json"


class BundleConfig(BaseModel):
    """Options for one build."""
    entry: Optional[str] = None
    output: Optional[str] = None
    source_type: Literal["module", "script"] = "module"
    presets: List[str] = Field(default_factory=lambda: list(DEFAULT_PRESETS))
    # Memoize module exports in the generated loader
    cache: bool = False
    # Accept circular imports; they only run with cache on
    allow_cycles: bool = False

    @model_validator(mode="after")
    def _cycles_need_cache(self):
        if self.allow_cycles and not self.cache:
            raise ValueError("allow_cycles requires cache: a circular bundle without cached exports never finishes loading")
        return self

    def merge(self, **overrides):
        """Return a copy with every override that is not None applied."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return BundleConfig.model_validate(data)


def config_paths(path=None):
    """Candidate configuration files, most specific first."""
    paths = [CONFIG_FILE, os.path.expanduser(os.path.join("~", ".minipack", CONFIG_FILE))]
    if path:
        paths.insert(0, path)
    return paths


def load_config(path=None):
    """
    Load build configuration.

    The first existing file among ``path``, ``./minipack.json`` and
    ``~/.minipack/minipack.json`` is used; without one, defaults apply.
    Relative ``entry`` and ``output`` paths are taken relative to the file.

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist
        pydantic.ValidationError: If the file contents are not a valid config
    """
    if path and not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    for candidate in config_paths(path):
        if os.path.exists(candidate):
            with open(candidate, "r") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"{candidate}: expected a JSON object")
            base_dir = os.path.dirname(os.path.abspath(candidate))
            for key in ("entry", "output"):
                if data.get(key) and not os.path.isabs(data[key]):
                    data[key] = os.path.join(base_dir, data[key])
            return BundleConfig.model_validate(data)

    return BundleConfig()
