"""
Module transformer - rewrites ES module syntax to the CommonJS convention.

The output of a transform is the body of a function that receives three
values from the loader: ``require``, ``module`` and ``exports``. Imports
become ``require`` calls hoisted to the top of the body and exports become
getters on ``exports``. References to imported names are rewritten to read
the required module when they run, so bindings stay live.
"""
import json
import os
import re

from lark import Token, Transformer
from lark.exceptions import VisitError

from bundler.errors import BuildError, TransformError, get_line_context
from bundler.parser import get_parser, string_value
from bundler.scope import ReferenceRewriter, end_line, more_declarators, pattern_names

# Named passes the transformer knows, in the order they are offered.
PRESETS = ("commonjs", "strict")
DEFAULT_PRESETS = ("commonjs", "strict")

_WORD = re.compile(r"[\w$]+")
_NOT_IDENTIFIER = re.compile(r"[^\w$]+")


class ModuleTransformer(Transformer):
    """
    Transforms a parsed module into CommonJS code.

    Declaration rules return small dicts describing what they declare; the
    ``start`` rule turns them into a header (getters and requires) plus edits
    applied to the original source text.
    """

    def __init__(self, source, presets=DEFAULT_PRESETS, file_path=None):
        """
        Args:
            source: The text the parse tree was built from
            presets: Names of the passes to apply
            file_path: Used only in error messages
        """
        super().__init__()
        for preset in presets:
            if preset not in PRESETS:
                raise TransformError(
                    f"Unknown preset {preset!r}",
                    file_path=file_path,
                    suggestion=f"Available presets: {', '.join(PRESETS)}",
                )
        self._source = source
        self._presets = tuple(presets)
        self._file_path = file_path
        self._taken = set(_WORD.findall(source))

    # --- Imports ---

    def import_decl(self, args):
        keyword, source = args[0], args[-1]
        bindings = []
        for arg in args[1:-1]:
            if isinstance(arg, list):
                bindings.extend(arg)
            elif isinstance(arg, tuple):
                bindings.append(arg)
        return {
            "kind": "import_declaration",
            "start": keyword.start_pos,
            "end": source.end_pos,
            "line": keyword.line,
            "source": string_value(source),
            "bindings": bindings,
        }

    def bare_import(self, args):
        keyword, source = args
        return {
            "kind": "import_declaration",
            "start": keyword.start_pos,
            "end": source.end_pos,
            "line": keyword.line,
            "source": string_value(source),
            "bindings": [],
        }

    def default_binding(self, args):
        return ("default", str(args[0]))

    def namespace_binding(self, args):
        return ("*", str(args[-1]))

    def named_imports(self, args):
        return [arg for arg in args if isinstance(arg, tuple)]

    def import_specifier(self, args):
        # (imported, local)
        names = [str(arg) for arg in args if arg.type == "NAME"]
        return (names[0], names[-1])

    # --- Exports ---

    def export_var(self, args):
        keyword, kind, binding = args
        return {
            "kind": "export_declaration",
            "start": keyword.start_pos,
            "strip_to": kind.start_pos,
            "line": keyword.line,
            "names": pattern_names(binding),
            "scan_declarators": True,
            "end_line": end_line(binding),
        }

    def export_function(self, args, declares="function"):
        return {
            "kind": "export_declaration",
            "start": args[0].start_pos,
            "strip_to": args[1].start_pos,
            "line": args[0].line,
            "names": [str(args[-1])],
            "declares": declares,
        }

    def export_class(self, args):
        return self.export_function(args, declares="class")

    def export_default_function(self, args, declares="function"):
        return {
            "kind": "export_default_declaration",
            "start": args[0].start_pos,
            "strip_to": args[2].start_pos,
            "keyword_end": args[-1].end_pos,
            "line": args[0].line,
            "declares": declares,
        }

    def export_default_class(self, args):
        return self.export_default_function(args, declares="class")

    def export_default(self, args):
        return {
            "kind": "export_default",
            "start": args[0].start_pos,
            "end": args[1].end_pos,
            "line": args[0].line,
        }

    def export_named(self, args):
        clause = args[1]
        source = args[-1] if _is_token(args[-1], "STRING") else None
        return {
            "kind": "export_named",
            "start": args[0].start_pos,
            "end": source.end_pos if source is not None else clause["end"],
            "line": args[0].line,
            "specifiers": clause["specifiers"],
            "source": string_value(source) if source is not None else None,
        }

    def export_clause(self, args):
        return {
            "specifiers": [arg for arg in args if isinstance(arg, tuple)],
            "end": args[-1].end_pos,
        }

    def export_specifier(self, args):
        # (local, exported)
        names = [str(arg) for arg in args if arg.type == "NAME"]
        return (names[0], names[-1])

    def export_all(self, args):
        names = [arg for arg in args if arg.type == "NAME"]
        return {
            "kind": "export_all",
            "start": args[0].start_pos,
            "end": args[-1].end_pos,
            "line": args[0].line,
            "namespace": str(names[0]) if names else None,
            "source": string_value(args[-1]),
        }

    # --- Module ---

    def start(self, items):
        """Assemble the header and rewrite the module body."""
        declarations = [item for item in items if isinstance(item, dict)]
        if declarations and "commonjs" not in self._presets:
            raise self.error("Module syntax requires the 'commonjs' preset", declarations[0],
                             suggestion="Add 'commonjs' to the presets")

        module = _CommonJSModule(self)
        for index, item in enumerate(items):
            if isinstance(item, dict):
                getattr(module, item["kind"])(item, items[index + 1:])

        rewriter = ReferenceRewriter(
            module.bindings,
            module.edits,
            get_parser().parse,
            lambda message, line: self.error(message, {"line": line}),
        )
        rewriter.visit(items)

        if self._source.startswith("#!"):
            newline = self._source.find("\n")
            module.edits.append((0, newline if newline >= 0 else len(self._source), ""))

        header = []
        if "strict" in self._presets:
            header.append('"use strict";')
        if declarations:
            header.append('Object.defineProperty(exports, "__esModule", { value: true });')
        header.extend(module.header())

        body = _apply_edits(self._source, module.edits)
        if not header:
            return body
        return "\n".join(header) + "\n" + body

    # --- Helpers ---

    def unique_name(self, hint):
        """A fresh identifier derived from hint that the module does not use."""
        base = "_" + (_NOT_IDENTIFIER.sub("_", hint).strip("_") or "module")
        name, count = base, 1
        while name in self._taken:
            count += 1
            name = f"{base}{count}"
        self._taken.add(name)
        return name

    def error(self, message, item, suggestion=None):
        return TransformError(
            message,
            file_path=self._file_path,
            line_number=item.get("line"),
            context=get_line_context(self._source, item.get("line")),
            suggestion=suggestion,
        )


class _CommonJSModule:
    """Collects the getters, requires and text edits for one module."""

    def __init__(self, transformer):
        self._transformer = transformer
        self._exports = {}  # exported name -> expression
        self._requires = {}  # specifier -> local reference
        self._interop = {}  # local reference -> default interop reference
        self._imports = []
        self._star_exports = []
        self.bindings = {}  # imported local name -> expression reading it
        self.edits = []

    def header(self):
        lines = []
        for exported, expression in self._exports.items():
            expression = self.bindings.get(expression, expression)
            lines.append(
                f"Object.defineProperty(exports, {json.dumps(exported)}, "
                f"{{ enumerable: true, get: function () {{ return {expression}; }} }});"
            )
        lines.extend(self._imports)
        for ref in self._star_exports:
            lines.append(
                f"Object.keys({ref}).forEach(function (key) {{\n"
                f"  if (key === \"default\" || key === \"__esModule\" || Object.prototype.hasOwnProperty.call(exports, key)) return;\n"
                f"  Object.defineProperty(exports, key, {{ enumerable: true, get: function () {{ return {ref}[key]; }} }});\n"
                f"}});"
            )
        return lines

    def require(self, specifier, bind=True):
        """Emit the require call for specifier once and return its reference."""
        if specifier in self._requires:
            return self._requires[specifier]
        if not bind:
            self._imports.append(f"require({json.dumps(specifier)});")
            return None
        stem = os.path.splitext(os.path.basename(specifier.rstrip("/")))[0]
        ref = self._transformer.unique_name(stem)
        self._requires[specifier] = ref
        self._imports.append(f"var {ref} = require({json.dumps(specifier)});")
        return ref

    def export(self, exported, expression, item):
        if exported in self._exports:
            raise self._transformer.error(f"Duplicate export {exported!r}", item)
        self._exports[exported] = expression

    def remove(self, item, following):
        """Drop a whole declaration, with the ';' that ends it."""
        end = item["end"]
        if following and _is_token(following[0], "SEMI"):
            end = following[0].end_pos
        self.edits.append((item["start"], end, ""))

    # --- Declaration kinds ---

    def import_declaration(self, item, following):
        self.remove(item, following)
        if not item["bindings"]:
            self.require(item["source"], bind=False)
            return
        ref = self.require(item["source"])
        for imported, local in item["bindings"]:
            if local in self.bindings:
                raise self._transformer.error(f"Duplicate import {local!r}", item)
            if imported == "*":
                self.bindings[local] = ref
            elif imported == "default":
                self.bindings[local] = f"{self.interop(ref)}.default"
            else:
                self.bindings[local] = f"{ref}.{imported}"

    def interop(self, ref):
        """A reference whose .default is the default export, CommonJS modules included."""
        if ref not in self._interop:
            name = self._transformer.unique_name(ref + "_default")
            self._interop[ref] = name
            self._imports.append(f"var {name} = {ref} && {ref}.__esModule ? {ref} : {{ default: {ref} }};")
        return self._interop[ref]

    def export_declaration(self, item, following):
        self.edits.append((item["start"], item["strip_to"], ""))
        names = list(item["names"])
        if item.get("scan_declarators"):
            names.extend(more_declarators(following, item["end_line"]))
        for name in names:
            self.export(name, name, item)

    def export_default_declaration(self, item, following):
        self.edits.append((item["start"], item["strip_to"], ""))
        name = following[0] if following else None
        if _is_token(name, "NAME") and name != "extends":
            local = str(name)
        else:
            local = self._transformer.unique_name("default")
            self.edits.append((item["keyword_end"], item["keyword_end"], f" {local}"))
        self.export("default", local, item)

    def export_default(self, item, following):
        local = self._transformer.unique_name("default")
        self.edits.append((item["start"], item["end"], f"var {local} ="))
        self.export("default", local, item)

    def export_named(self, item, following):
        self.remove(item, following)
        ref = self.require(item["source"]) if item["source"] is not None else None
        for local, exported in item["specifiers"]:
            if ref is None:
                value = local
            elif local == "default":
                value = _default_of(ref)
            else:
                value = f"{ref}.{local}"
            self.export(exported, value, item)

    def export_all(self, item, following):
        self.remove(item, following)
        ref = self.require(item["source"])
        if item["namespace"]:
            self.export(item["namespace"], ref, item)
        elif ref not in self._star_exports:
            self._star_exports.append(ref)


def transform_module(parsed, presets=DEFAULT_PRESETS):
    """
    Transform a parsed module into a CommonJS function body.

    Args:
        parsed: ParsedModule from bundler.parser.parse_module
        presets: Names of the passes to apply

    Raises:
        TransformError: Unknown preset, or module syntax the presets cannot express
    """
    transformer = ModuleTransformer(parsed.source, presets, file_path=parsed.file_path)
    try:
        return transformer.transform(parsed.tree)
    except VisitError as e:
        if isinstance(e.orig_exc, BuildError):
            raise e.orig_exc
        raise TransformError(
            f"Transformation error: {e.orig_exc}",
            file_path=parsed.file_path,
            suggestion="Check the module's import and export declarations",
        ) from e.orig_exc


def _default_of(ref):
    return f"{ref} && {ref}.__esModule ? {ref}.default : {ref}"


def _apply_edits(source, edits):
    parts = []
    cursor = 0
    for start, end, text in sorted(edits, key=lambda edit: (edit[0], edit[1])):
        parts.append(source[cursor:start])
        parts.append(text)
        cursor = end
    parts.append(source[cursor:])
    return "".join(parts)


def _is_token(item, type_):
    return isinstance(item, Token) and item.type == type_
