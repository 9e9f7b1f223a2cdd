import argparse
import json
import os
import shutil
import subprocess
import sys

from bundler.config import CONFIG_FILE, load_config
from bundler.errors import BuildError
from bundler.graph import create_graph
from bundler.log import log, set_verbose
from bundler.pipeline import build, describe_graph

BUILD_DIR = "__minipack_build__"


def get_config(args):
    """Load minipack.json and apply command-line overrides."""
    try:
        config = load_config(args.config)
        return config.merge(
            entry=getattr(args, "entry", None),
            output=getattr(args, "output", None),
            source_type="script" if getattr(args, "script", False) else None,
            cache=True if getattr(args, "cache", False) else None,
            allow_cycles=True if getattr(args, "allow_cycles", False) else None,
        )
    except (OSError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        print(f"Error: Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)


def bundle_or_exit(config):
    try:
        return build(config=config)
    except (BuildError, ValueError) as e:
        print(f"Error: Build failed:\n{e}", file=sys.stderr)
        sys.exit(1)


def cmd_build(args):
    config = get_config(args)
    code = bundle_or_exit(config)

    if not config.output:
        sys.stdout.write(code)
        return

    output_dir = os.path.dirname(os.path.abspath(config.output))
    os.makedirs(output_dir, exist_ok=True)
    with open(config.output, 'w') as f:
        f.write(code)
    log(f"Wrote {config.output} ({len(code)} characters)")


def cmd_graph(args):
    config = get_config(args)
    if not config.entry:
        print("Error: No entry file given.", file=sys.stderr)
        sys.exit(1)
    try:
        graph = create_graph(config.entry, config)
    except BuildError as e:
        print(f"Error: Build failed:\n{e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(describe_graph(graph), indent=2))


def cmd_run(args):
    node = shutil.which("node")
    if node is None:
        print("Error: 'node' was not found on PATH; use 'minipack build' instead.", file=sys.stderr)
        sys.exit(1)

    config = get_config(args)
    code = bundle_or_exit(config)

    if not os.path.exists(BUILD_DIR):
        os.makedirs(BUILD_DIR)

    target_file = os.path.join(BUILD_DIR, "bundle.js")
    with open(target_file, 'w') as f:
        f.write(code)

    sys.exit(subprocess.call([node, target_file]))


def cmd_init(args):
    log("Initializing project...")
    os.makedirs("src", exist_ok=True)
    with open(os.path.join("src", "a.js"), "w") as f:
        f.write("import { message } from './b.js';\n\nconsole.log(message);\n")
    with open(os.path.join("src", "b.js"), "w") as f:
        f.write("export const message = 'Hello from minipack';\n")
    with open(CONFIG_FILE, "w") as f:
        json.dump({"entry": "src/a.js", "output": "dist/bundle.js"}, f, indent=2)
    log(f"Created src/a.js, src/b.js and {CONFIG_FILE}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="minipack: bundle JavaScript modules into one file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    parser.add_argument("--config", help=f"Configuration file (default: ./{CONFIG_FILE})")
    subparsers = parser.add_subparsers(dest="command")

    build_cmd = subparsers.add_parser("build", help="Bundle an entry file")
    build_cmd.add_argument("entry", nargs="?", help="Entry file (default: 'entry' from the config)")
    build_cmd.add_argument("-o", "--output", help="Output file (default: stdout)")
    build_cmd.add_argument("--cache", action="store_true", help="Run each module once and share its exports")
    build_cmd.add_argument("--allow-cycles", action="store_true", help="Accept circular imports (needs --cache)")
    build_cmd.add_argument("--script", action="store_true", help="Parse files as scripts: no import/export")

    graph_cmd = subparsers.add_parser("graph", help="Print the dependency graph as JSON")
    graph_cmd.add_argument("entry", nargs="?")
    graph_cmd.add_argument("--allow-cycles", action="store_true")
    graph_cmd.add_argument("--cache", action="store_true")

    run_cmd = subparsers.add_parser("run", help="Bundle and execute with node")
    run_cmd.add_argument("entry", nargs="?")
    run_cmd.add_argument("--cache", action="store_true")
    run_cmd.add_argument("--allow-cycles", action="store_true")

    subparsers.add_parser("init", help="Create an example project")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    if args.command == "build": cmd_build(args)
    elif args.command == "graph": cmd_graph(args)
    elif args.command == "run": cmd_run(args)
    elif args.command == "init": cmd_init(args)
    else: parser.print_help()


if __name__ == "__main__":
    main()
