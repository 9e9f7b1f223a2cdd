"""
Tests for the minipack command line.
"""
import json
import os

import pytest

import minipack
from bundler.log import set_verbose


@pytest.fixture
def project(make_project, tmp_path, monkeypatch):
    """A two-file project as the working directory, with no user config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    yield make_project({
        "a.js": "import { val } from './b.js';\nconsole.log(val);\n",
        "b.js": "export const val = 42;\n",
    })
    set_verbose(False)


class TestBuildCommand:
    """Tests for 'minipack build'."""

    def test_build_to_stdout(self, project, capsys):
        minipack.main(["build", "a.js"])

        out = capsys.readouterr().out
        assert out.startswith("(function minipackLoad(modules, entry, cache) {")
        assert '{"./b.js": 1}' in out
        assert out.endswith("}, 0, false);\n")

    def test_build_to_file(self, project, capsys):
        minipack.main(["build", "a.js", "-o", os.path.join("dist", "bundle.js")])

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "INFO:" in captured.err
        with open(project / "dist" / "bundle.js") as f:
            assert "minipackLoad" in f.read()

    def test_build_with_cache(self, project, capsys):
        minipack.main(["build", "a.js", "--cache"])
        assert capsys.readouterr().out.endswith("}, 0, true);\n")

    def test_missing_file_fails(self, project, capsys):
        with pytest.raises(SystemExit) as exc_info:
            minipack.main(["build", "missing.js"])

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "Error: Build failed:" in err
        assert "file-access" in err

    def test_no_entry_fails(self, project, capsys):
        with pytest.raises(SystemExit) as exc_info:
            minipack.main(["build"])
        assert exc_info.value.code == 1
        assert "No entry file" in capsys.readouterr().err

    def test_allow_cycles_without_cache(self, project, capsys):
        with pytest.raises(SystemExit) as exc_info:
            minipack.main(["build", "a.js", "--allow-cycles"])
        assert exc_info.value.code == 1
        assert "Error: Invalid configuration:" in capsys.readouterr().err

    def test_cycle_fails(self, project, make_project, capsys):
        make_project({"b.js": "import './a.js';\nexport const val = 42;\n"})

        with pytest.raises(SystemExit):
            minipack.main(["build", "a.js"])
        assert "circular import" in capsys.readouterr().err

    def test_script_mode_rejects_imports(self, project, capsys):
        with pytest.raises(SystemExit):
            minipack.main(["build", "a.js", "--script"])
        assert "sourceType: module" in capsys.readouterr().err

    def test_verbose(self, project, capsys):
        minipack.main(["--verbose", "build", "a.js"])

        err = capsys.readouterr().err
        assert "DEBUG:" in err
        assert "Asset 1:" in err

    def test_config_file(self, project, capsys):
        (project / "custom.json").write_text(json.dumps({"entry": "a.js", "cache": True}))

        minipack.main(["--config", "custom.json", "build"])
        assert capsys.readouterr().out.endswith("}, 0, true);\n")

    def test_missing_config_file(self, project, capsys):
        with pytest.raises(SystemExit) as exc_info:
            minipack.main(["--config", "nope.json", "build", "a.js"])
        assert exc_info.value.code == 1
        assert "Config file not found" in capsys.readouterr().err


class TestGraphCommand:
    """Tests for 'minipack graph'."""

    def test_graph_json(self, project, capsys):
        minipack.main(["graph", "a.js"])

        graph = json.loads(capsys.readouterr().out)
        assert graph == [
            {"id": 0, "file": "a.js", "dependencies": ["./b.js"], "mapping": {"./b.js": 1}},
            {"id": 1, "file": "b.js", "dependencies": [], "mapping": {}},
        ]

    def test_graph_without_entry(self, project, capsys):
        with pytest.raises(SystemExit):
            minipack.main(["graph"])
        assert "No entry file" in capsys.readouterr().err


class TestRunCommand:
    """Tests for 'minipack run'."""

    def test_run_without_node(self, project, capsys, monkeypatch):
        monkeypatch.setattr(minipack.shutil, "which", lambda name: None)

        with pytest.raises(SystemExit) as exc_info:
            minipack.main(["run", "a.js"])
        assert exc_info.value.code == 1
        assert "'node' was not found" in capsys.readouterr().err

    def test_run_with_node(self, project, capsys, monkeypatch):
        calls = []
        monkeypatch.setattr(minipack.shutil, "which", lambda name: "/usr/bin/node")
        monkeypatch.setattr(minipack.subprocess, "call", lambda args: calls.append(args) or 0)

        with pytest.raises(SystemExit) as exc_info:
            minipack.main(["run", "a.js"])

        assert exc_info.value.code == 0
        target = os.path.join(minipack.BUILD_DIR, "bundle.js")
        assert calls == [["/usr/bin/node", target]]
        assert os.path.exists(project / minipack.BUILD_DIR / "bundle.js")


class TestInitCommand:
    """Tests for 'minipack init'."""

    def test_init_then_build(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        minipack.main(["init"])
        assert (tmp_path / "src" / "a.js").exists()
        assert (tmp_path / "src" / "b.js").exists()
        assert json.loads((tmp_path / "minipack.json").read_text())["entry"] == "src/a.js"

        minipack.main(["build"])
        assert (tmp_path / "dist" / "bundle.js").exists()


def test_no_command_prints_help(capsys):
    minipack.main([])
    assert "usage:" in capsys.readouterr().out
