"""
Imported bindings and the references to them.

Imports do not become variables in the generated code. Every reference to an
imported name is rewritten to read the exporting module at the moment it
runs, so importers see the exporter's current value (live bindings) and a
module in an import cycle can be required before its exports are set.

Scopes are approximated from the token stream: block declarations
(``var``, ``let``, ``const``, ``function``, ``class``), function and arrow
parameters, ``catch`` parameters and ``for`` heads shadow an import within
their bracket group.
"""
from lark import Token, Tree
from lark.exceptions import UnexpectedInput

VAR_KINDS = ("var", "let", "const")
# A '(' group after one of these is not a parameter list
CONTROL_WORDS = ("if", "while", "switch", "with", "for")
# Words that may precede a member name in a class body
MEMBER_PREFIXES = ("static", "get", "set", "async")


class ReferenceRewriter:
    """
    Rewrites references to imported names as text edits.

    Args:
        bindings: Local name -> expression that reads the imported value
        edits: List of (start, end, text) edits to append to
        parse: Callable parsing a source fragment (template substitutions)
        error: Callable(message, line) returning the exception to raise
    """

    def __init__(self, bindings, edits, parse, error):
        self.bindings = bindings
        self.edits = edits
        self._parse = parse
        self._error = error

    def visit(self, items, shadowed=frozenset(), opener=None, class_body=False, offset=0):
        """Rewrite the references in one list of sibling tokens and groups."""
        if not self.bindings:
            return
        shadowed = set(shadowed) | declared_names(items)
        arrow_params = set()

        for index, item in enumerate(items):
            previous = items[index - 1] if index else None
            following = items[index + 1] if index + 1 < len(items) else None

            if _is_group(item):
                self.visit(
                    item.children[1:-1],
                    shadowed | arrow_params | group_scope(items, index),
                    opener=item.children[0].type,
                    class_body=is_class_body(items, index),
                    offset=offset,
                )
            elif _is_token(item, "TEMPLATE"):
                self._visit_template(item, shadowed | arrow_params, offset)
            elif _is_token(item, "NAME"):
                if str(item) in arrow_params:
                    continue
                self._visit_name(items, index, shadowed, opener, class_body, offset)
            elif _is_arrow(item) and not _is_group(following, "LBRACE"):
                # An expression body: parameters are in scope up to the next ',' or ';'
                arrow_params |= parameter_names(previous)
            elif _is_token(item, "SEMI") or _is_token(item, "COMMA"):
                arrow_params = set()

    def _visit_name(self, items, index, shadowed, opener, class_body, offset):
        item = items[index]
        name = str(item)
        if name not in self.bindings or name in shadowed:
            return

        previous = items[index - 1] if index else None
        following = items[index + 1] if index + 1 < len(items) else None

        if _is_token(previous, "PUNCT") and previous.endswith(".") and not previous.endswith("..."):
            return  # member access
        if _is_token(previous, "NAME") and previous in ("function", "class") + VAR_KINDS:
            return  # declared name
        if _is_arrow(following):
            return  # arrow parameter
        if _is_token(following, "PUNCT") and _is_assignment(following):
            return  # assignment target or class field
        if _is_group(following, "LPAR") and index + 2 < len(items) and _is_group(items[index + 2], "LBRACE"):
            return  # method definition
        if class_body and _is_member_start(previous):
            return

        expression = self.bindings[name]
        start, end = item.start_pos + offset, item.end_pos + offset
        if opener == "LBRACE" and (previous is None or _is_token(previous, "COMMA")):
            if _is_token(following, "PUNCT") and following.startswith(":"):
                return  # property key
            if following is None or _is_token(following, "COMMA"):
                # shorthand property
                self.edits.append((start, end, f"{name}: {expression}"))
                return
        if "." in expression and _is_group(following, "LPAR") and not (
                _is_token(previous, "KEYWORD") and previous == "new"):
            # A plain call: 'this' is undefined, not the exporting module
            expression = f"(0, {expression})"
        self.edits.append((start, end, expression))

    def _visit_template(self, token, shadowed, offset):
        text = str(token)
        for start, end in template_substitutions(text):
            try:
                tree = self._parse(text[start:end])
            except UnexpectedInput as e:
                raise self._error(f"Cannot read template substitution: {e}", token.line) from e
            self.visit(tree.children, shadowed, offset=offset + token.start_pos + start)


def declared_names(items):
    """Names declared directly in a list of sibling tokens and groups."""
    names = set()
    for index, item in enumerate(items):
        if not _is_token(item, "NAME"):
            continue
        rest = items[index + 1:]
        if item in VAR_KINDS and rest and (_is_token(rest[0], "NAME") or _is_group(rest[0], "LBRACE", "LSQB")):
            names.update(pattern_names(rest[0]))
            names.update(more_declarators(rest[1:], end_line(rest[0])))
        elif item in ("function", "class") and _starts_statement(items[index - 1] if index else None):
            if rest and _is_token(rest[0], "PUNCT") and rest[0] == "*":
                rest = rest[1:]
            if rest and _is_token(rest[0], "NAME"):
                names.add(str(rest[0]))
    return names


def group_scope(items, index):
    """Names a bracket group adds to the scope of its own contents."""
    group = items[index]
    opener = group.children[0].type
    previous = items[index - 1] if index else None
    following = items[index + 1] if index + 1 < len(items) else None

    if opener == "LPAR":
        if _is_arrow(following) or _is_token(previous, "NAME") and previous == "catch":
            return set(pattern_names(group))
        if _is_group(following, "LBRACE") and not (_is_token(previous, "NAME") and previous in CONTROL_WORDS):
            return set(pattern_names(group))
        if _is_token(previous, "NAME") and previous == "for":
            return declared_names(group.children[1:-1])
        return set()

    if opener == "LBRACE":
        head = items[index - 2] if index >= 2 else None
        if _is_group(previous, "LPAR"):
            if _is_token(head, "NAME") and head in CONTROL_WORDS:
                if head == "for":
                    return declared_names(previous.children[1:-1])
                return set()
            return set(pattern_names(previous))  # function, method or catch parameters
        if _is_arrow(previous):
            return parameter_names(head)
    return set()


def is_class_body(items, index):
    """Whether the '{' group at index is the body of a class."""
    if not _is_group(items[index], "LBRACE"):
        return False
    for item in reversed(items[:index]):
        if isinstance(item, dict):
            return item.get("declares") == "class"
        if _is_token(item, "NAME") and item == "class":
            return True
        if _is_token(item, "SEMI") or _is_group(item, "LBRACE"):
            return False
    return False


def parameter_names(item):
    """Parameters of an arrow function, given the item before '=>'."""
    if _is_token(item, "NAME"):
        return {str(item)}
    if _is_group(item, "LPAR"):
        return set(pattern_names(item))
    return set()


def pattern_names(node):
    """Names bound by a binding: an identifier, object pattern or array pattern."""
    if isinstance(node, Token):
        return [str(node)] if node.type == "NAME" else []
    opener, inner = node.children[0], node.children[1:-1]
    names = []
    for element in _split_commas(inner):
        if not element:
            continue
        if _is_token(element[0], "PUNCT") and element[0] == "...":
            if len(element) > 1:
                names.extend(pattern_names(element[1]))
            continue
        if opener.type == "LBRACE":
            colon = next((i for i, part in enumerate(element)
                          if _is_token(part, "PUNCT") and part.startswith(":")), None)
            if colon is not None:
                if colon + 1 < len(element):
                    names.extend(pattern_names(element[colon + 1]))
                continue
        names.extend(pattern_names(element[0]))
    return names


def more_declarators(following, last_line):
    """
    Names of the extra declarators in 'const a = 1, b = 2'.

    The declaration ends at a ';', at another declaration, or at a line break
    that is not continued by a comma or an operator.
    """
    names = []
    expect_binding = False
    previous = None
    for item in following:
        if isinstance(item, dict) or _is_token(item, "SEMI"):
            break
        continued = _is_operator(previous) or _is_operator(item)
        if start_line(item) > last_line and not continued:
            break
        if expect_binding:
            names.extend(pattern_names(item))
            expect_binding = False
        elif _is_token(item, "COMMA"):
            expect_binding = True
        previous = item
        last_line = end_line(item)
    return names


def template_substitutions(text):
    """Offsets (start, end) of the ${...} expressions in a template literal."""
    index = 1
    while index < len(text) - 1:
        if text[index] == "\\":
            index += 2
        elif text.startswith("${", index):
            start = index + 2
            end = _expression_end(text, start)
            yield start, end
            index = end + 1
        else:
            index += 1


def _expression_end(text, index):
    depth = 0
    while index < len(text):
        char = text[index]
        if char in "'\"`":
            index = _literal_end(text, index)
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return index
            depth -= 1
        index += 1
    return index


def _literal_end(text, index):
    quote = text[index]
    index += 1
    while index < len(text) and text[index] != quote:
        if text[index] == "\\":
            index += 1
        elif quote == "`" and text.startswith("${", index):
            index = _expression_end(text, index + 2)
        index += 1
    return index + 1


def _split_commas(children):
    elements = [[]]
    for child in children:
        if _is_token(child, "COMMA"):
            elements.append([])
        else:
            elements[-1].append(child)
    return elements


def _starts_statement(previous):
    return (previous is None or isinstance(previous, dict) or _is_token(previous, "SEMI")
            or _is_group(previous, "LBRACE"))


def _is_member_start(previous):
    return (previous is None or _is_token(previous, "SEMI") or _is_group(previous, "LBRACE")
            or _is_token(previous, "NAME") and previous in MEMBER_PREFIXES
            or _is_token(previous, "PUNCT") and previous == "*")


def _is_assignment(token):
    return token.startswith("=") and not token.startswith(("==", "=>"))


def _is_arrow(item):
    return _is_token(item, "PUNCT") and item.startswith("=>")


def _is_operator(item):
    return _is_token(item, "COMMA") or _is_token(item, "PUNCT") or _is_token(item, "DIV")


def _is_group(item, *openers):
    if not isinstance(item, Tree) or item.data != "group":
        return False
    return not openers or item.children[0].type in openers


def _is_token(item, type_):
    return isinstance(item, Token) and item.type == type_


def start_line(item):
    return item.line if isinstance(item, Token) else item.meta.line


def end_line(item):
    return item.end_line if isinstance(item, Token) else item.meta.end_line
