"""
Shared fixtures for the minipack test suite.
"""
import json
import os
import sys

import pytest

# Make the repository root importable when the package is not installed
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def make_project(tmp_path):
    """
    Write a set of files under a temporary directory.

    Usage: root = make_project({"a.js": "...", "lib/b.js": "..."})
    """
    def write(files):
        for name, content in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return write


# console.log is captured into an array the test can read back
CONSOLE_SHIM = """
globalThis.__output = [];
globalThis.console = {
  log: function () {
    globalThis.__output.push(Array.prototype.slice.call(arguments).map(String).join(" "));
  }
};
"""


class JSContext:
    """A V8 context for executing generated bundles."""

    def __init__(self, mini_racer):
        self._ctx = mini_racer.MiniRacer()
        self._ctx.eval(CONSOLE_SHIM)

    def eval(self, code):
        return self._ctx.eval(code)

    def run(self, code):
        """Evaluate code and return the lines it logged."""
        self._ctx.eval(code)
        return self.output()

    def output(self):
        return json.loads(self._ctx.eval("JSON.stringify(globalThis.__output)"))

    def value(self, expression):
        """JSON round-trip of a JavaScript expression's value."""
        return json.loads(self._ctx.eval(f"JSON.stringify({expression})"))


@pytest.fixture
def js():
    """Fresh JavaScript context; skips the test when mini-racer is missing."""
    mini_racer = pytest.importorskip("py_mini_racer")
    return JSContext(mini_racer)
