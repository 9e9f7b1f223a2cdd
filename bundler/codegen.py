"""
Code generation - turns a finished graph into one executable bundle.

The bundle is the runtime loader invoked once on a module table:

    (function minipackLoad(modules, entry, cache) { ... })({
      0: [function (require, module, exports) { ... }, {"./b.js": 1}],
      1: [function (require, module, exports) { ... }, {}],
    }, 0, false);
"""
import json

from bundler.runtime import get_loader

ENTRY_ID = 0


def module_entry(asset):
    """One module-table entry: the wrapped body and its specifier -> id mapping."""
    return (
        f"{asset.id}: [\n"
        f"function (require, module, exports) {{\n"
        f"{asset.code}\n"
        f"}},\n"
        f"{json.dumps(asset.mapping)},\n"
        f"],"
    )


def module_table(graph):
    """The module table literal, keyed by asset id, in graph order."""
    entries = "\n".join(module_entry(asset) for asset in graph)
    return "{\n" + entries + "\n}"


def bundle(graph, cache=False):
    """
    Generate the bundle for a graph.

    Args:
        graph: Assets from bundler.graph.create_graph
        cache: If True, the loader runs each module once and hands every
            importer the same exports object. If False, each require runs
            the module body again with fresh exports.

    Returns:
        JavaScript source that loads the entry module when evaluated
    """
    flag = "true" if cache else "false"
    return f"({get_loader()})({module_table(graph)}, {ENTRY_ID}, {flag});\n"
