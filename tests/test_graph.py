"""
Unit tests for dependency graph construction.
"""
import os

import pytest

from bundler.config import BundleConfig
from bundler.errors import CycleError, FileAccessError, ParseError
from bundler.graph import create_graph, find_cycle, resolve_specifier


class TestCreateGraph:
    """Tests for create_graph()."""

    def test_entry_with_one_dependency(self, make_project):
        root = make_project({
            "a.js": "import { val } from './b.js';\nconsole.log(val);\n",
            "b.js": "export const val = 42;\n",
        })

        graph = create_graph(str(root / "a.js"))

        assert len(graph) == 2
        assert [asset.id for asset in graph] == [0, 1]
        assert graph[0].file_path == str(root / "a.js")
        assert graph[0].mapping == {"./b.js": 1}
        assert graph[1].file_path == str(root / "b.js")
        assert graph[1].mapping == {}

    def test_single_file(self, make_project):
        root = make_project({"main.js": "console.log('alone');"})

        graph = create_graph(str(root / "main.js"))
        assert len(graph) == 1
        assert graph[0].id == 0

    def test_breadth_first_order(self, make_project):
        """Direct dependencies come before their own dependencies."""
        root = make_project({
            "entry.js": "import './x.js';\nimport './y.js';",
            "x.js": "import './z.js';",
            "y.js": "",
            "z.js": "",
        })

        graph = create_graph(str(root / "entry.js"))

        names = [os.path.basename(asset.file_path) for asset in graph]
        assert names == ["entry.js", "x.js", "y.js", "z.js"]
        assert [asset.id for asset in graph] == [0, 1, 2, 3]

    def test_every_specifier_is_mapped(self, make_project):
        root = make_project({
            "a.js": "import b from './b.js';\nexport * from './lib/c.js';",
            "b.js": "import { d } from './lib/d.js';",
            "lib/c.js": "import { d } from './d.js';",
            "lib/d.js": "export const d = 4;",
        })

        graph = create_graph(str(root / "a.js"))

        ids = {asset.id for asset in graph}
        for asset in graph:
            assert set(asset.mapping) == set(asset.dependencies)
            assert set(asset.mapping.values()) <= ids

    def test_shared_dependency_built_once(self, make_project):
        """Two importers of one file map to the same asset."""
        root = make_project({
            "a.js": "import './b.js';\nimport './c.js';",
            "b.js": "import { s } from './shared.js';",
            "c.js": "import { s } from './shared.js';",
            "shared.js": "export const s = 1;",
        })

        graph = create_graph(str(root / "a.js"))

        assert len(graph) == 4
        assert graph[1].mapping["./shared.js"] == graph[2].mapping["./shared.js"] == 3

    def test_different_spellings_share_an_asset(self, make_project):
        root = make_project({
            "a.js": "import './lib/b.js';\nimport './lib/../lib/b.js';",
            "lib/b.js": "",
        })

        graph = create_graph(str(root / "a.js"))

        assert len(graph) == 2
        assert graph[0].mapping == {"./lib/b.js": 1, "./lib/../lib/b.js": 1}

    def test_specifiers_resolve_against_importer(self, make_project):
        root = make_project({
            "src/main.js": "import { util } from './lib/util.js';",
            "src/lib/util.js": "import { config } from '../config.js';\nexport const util = config;",
            "src/config.js": "export const config = {};",
        })

        graph = create_graph(str(root / "src" / "main.js"))

        assert [asset.file_path for asset in graph] == [
            str(root / "src" / "main.js"),
            str(root / "src" / "lib" / "util.js"),
            str(root / "src" / "config.js"),
        ]
        assert graph[1].mapping == {"../config.js": 2}

    def test_ids_restart_for_each_build(self, make_project):
        root = make_project({"a.js": "import './b.js';", "b.js": ""})

        first = create_graph(str(root / "a.js"))
        second = create_graph(str(root / "a.js"))

        assert [asset.id for asset in first] == [asset.id for asset in second] == [0, 1]

    def test_relative_entry(self, make_project, monkeypatch):
        root = make_project({"src/a.js": "import './b.js';", "src/b.js": ""})
        monkeypatch.chdir(root)

        graph = create_graph(os.path.join("src", "a.js"))
        assert graph[1].file_path == str(root / "src" / "b.js")


class TestGraphErrors:
    """Tests for builds that must fail."""

    def test_missing_dependency(self, make_project):
        root = make_project({"a.js": "import { val } from './missing.js';"})

        with pytest.raises(FileAccessError) as exc_info:
            create_graph(str(root / "a.js"))
        assert exc_info.value.file_path == str(root / "missing.js")

    def test_extension_is_not_inferred(self, make_project):
        root = make_project({"a.js": "import { val } from './b';", "b.js": "export const val = 1;"})

        with pytest.raises(FileAccessError):
            create_graph(str(root / "a.js"))

    def test_nested_failure_aborts_build(self, make_project):
        """A parse error three levels down stops the whole build."""
        root = make_project({
            "a.js": "import './b.js';",
            "b.js": "import './c.js';",
            "c.js": "var broken = {;",
        })

        with pytest.raises(ParseError) as exc_info:
            create_graph(str(root / "a.js"))
        assert exc_info.value.file_path == str(root / "c.js")

    def test_missing_entry(self, tmp_path):
        with pytest.raises(FileAccessError):
            create_graph(str(tmp_path / "nope.js"))

    def test_cycle_is_rejected(self, make_project):
        root = make_project({
            "a.js": "import { b } from './b.js';\nexport const a = 1;",
            "b.js": "import { a } from './a.js';\nexport const b = 2;",
        })

        with pytest.raises(CycleError) as exc_info:
            create_graph(str(root / "a.js"))

        error = exc_info.value
        assert error.chain == [str(root / "a.js"), str(root / "b.js"), str(root / "a.js")]
        assert "circular import" in str(error)
        assert "allow_cycles" in error.suggestion

    def test_self_import_is_a_cycle(self, make_project):
        root = make_project({"a.js": "import './a.js';"})

        with pytest.raises(CycleError):
            create_graph(str(root / "a.js"))

    def test_cycle_allowed(self, make_project):
        root = make_project({
            "a.js": "import { b } from './b.js';\nexport const a = 1;",
            "b.js": "import { a } from './a.js';\nexport const b = 2;",
        })
        config = BundleConfig(cache=True, allow_cycles=True)

        graph = create_graph(str(root / "a.js"), config)

        assert len(graph) == 2
        assert graph[0].mapping == {"./b.js": 1}
        assert graph[1].mapping == {"./a.js": 0}


class TestFindCycle:
    """Tests for find_cycle()."""

    def test_acyclic_diamond(self, make_project):
        root = make_project({
            "a.js": "import './b.js';\nimport './c.js';",
            "b.js": "import './d.js';",
            "c.js": "import './d.js';",
            "d.js": "",
        })

        graph = create_graph(str(root / "a.js"))
        assert find_cycle(graph) is None

    def test_longer_cycle(self, make_project):
        root = make_project({
            "a.js": "import './b.js';",
            "b.js": "import './c.js';",
            "c.js": "import './b.js';",
        })

        graph = create_graph(str(root / "a.js"), BundleConfig(cache=True, allow_cycles=True))
        assert find_cycle(graph) == [1, 2, 1]

    def test_long_import_chain(self, make_project):
        """A chain deeper than Python's recursion limit is searched without recursing."""
        files = {f"m{i}.js": f"import './m{i + 1}.js';" for i in range(1200)}
        files["m1200.js"] = ""
        root = make_project(files)

        graph = create_graph(str(root / "m0.js"))
        assert len(graph) == 1201
        assert find_cycle(graph) is None

    def test_cycle_at_end_of_long_chain(self, make_project):
        files = {f"m{i}.js": f"import './m{i + 1}.js';" for i in range(1200)}
        files["m1200.js"] = "import './m0.js';"
        root = make_project(files)

        with pytest.raises(CycleError) as exc_info:
            create_graph(str(root / "m0.js"))
        assert len(exc_info.value.chain) == 1202
        assert exc_info.value.chain[0] == exc_info.value.chain[-1] == str(root / "m0.js")


class TestResolveSpecifier:
    """Tests for resolve_specifier()."""

    @pytest.mark.parametrize("dirname, specifier, expected", [
        ("/src", "./b.js", "/src/b.js"),
        ("/src", "b.js", "/src/b.js"),
        ("/src/lib", "../b.js", "/src/b.js"),
        ("/src", "./lib/./x/../b.js", "/src/lib/b.js"),
        ("/src", "/abs/b.js", "/abs/b.js"),
    ])
    def test_resolve(self, dirname, specifier, expected):
        assert resolve_specifier(dirname, specifier) == os.path.normpath(expected)
