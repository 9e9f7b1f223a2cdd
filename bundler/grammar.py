"""
ECMAScript module grammar.

This module contains the Lark grammar used to read JavaScript modules. Only
top-level import and export declarations are given structure; the rest of a
module is a stream of tokens and balanced bracket groups, which is enough to
find every static dependency and to rewrite module syntax in place.

The token stream is split into two kinds of runs so that the contextual lexer
can tell a regular expression from a division: after an operand (a name, a
literal or a closing bracket) '/' divides, anywhere else it starts a regular
expression literal.
"""

module_grammar = r"""
    start: (_operand_run | _operator_run)?

    // _operand_run ends with an operand, _operator_run with anything else
    _operand_run: _operand
                | REGEX
                | _operand_run _operand
                | _operator_run _operand
                | _operator_run REGEX
    _operator_run: _operator
                 | _declaration
                 | _operand_run _operator
                 | _operand_run DIV
                 | _operand_run _declaration
                 | _operator_run _operator
                 | _operator_run _declaration
    _declaration: import_decl | export_decl
    _operand: NAME | NUMBER | STRING | TEMPLATE | group
    _operator: PUNCT | KEYWORD | COMMA | SEMI

    // --- Imports ---
    import_decl: IMPORT _import_clause FROM STRING
               | IMPORT STRING                                  -> bare_import
    _import_clause: default_binding
                  | namespace_binding
                  | named_imports
                  | default_binding COMMA namespace_binding
                  | default_binding COMMA named_imports
    default_binding: NAME
    namespace_binding: STAR AS NAME
    named_imports: LBRACE (import_specifier (COMMA import_specifier)* COMMA?)? RBRACE
    import_specifier: NAME (AS NAME)?

    // --- Exports ---
    // Only the head of a declaration is matched here; its body stays in the
    // token stream that follows.
    export_decl: EXPORT VAR_KIND _binding                       -> export_var
               | EXPORT _function NAME                         -> export_function
               | EXPORT CLASS NAME                             -> export_class
               | EXPORT DEFAULT _function                      -> export_default_function
               | EXPORT DEFAULT CLASS                          -> export_default_class
               | EXPORT DEFAULT                                -> export_default
               | EXPORT export_clause (FROM STRING)?           -> export_named
               | EXPORT STAR (AS NAME)? FROM STRING            -> export_all
    _binding: NAME | pattern
    // Not a group: after any group, a '/' is always a division
    pattern: LBRACE _inner? RBRACE
           | LSQB _inner? RSQB
    _function: (FUNCTION | ASYNC_FUNCTION) STAR?
    export_clause: LBRACE (export_specifier (COMMA export_specifier)* COMMA?)? RBRACE
    export_specifier: NAME (AS NAME)?

    // --- Brackets ---
    // Same runs as the top level, without declarations
    group: LPAR _inner? RPAR
         | LSQB _inner? RSQB
         | LBRACE _inner? RBRACE
    _inner: _inner_operand_run | _inner_operator_run
    _inner_operand_run: _inner_operand
                      | REGEX
                      | _inner_operand_run _inner_operand
                      | _inner_operator_run _inner_operand
                      | _inner_operator_run REGEX
    _inner_operator_run: _inner_operator
                       | _inner_operand_run _inner_operator
                       | _inner_operand_run DIV
                       | _inner_operator_run _inner_operator
    _inner_operand: NAME | NUMBER | STRING | TEMPLATE | group
    _inner_operator: PUNCT | KEYWORD | COMMA | SEMI

    // --- Keywords ---
    // 'import' and 'export' are only declarations when they start a
    // statement; 'import(' and 'import.meta' lex as plain names.
    IMPORT.2: /(?<![\w$.])import(?![\w$])(?=\s*[\w${*"'])/
    EXPORT.2: /(?<![\w$.])export(?![\w$])/
    ASYNC_FUNCTION.2: /async\s+function(?![\w$])/
    VAR_KIND: /(?:const|let|var)(?![\w$])/
    FUNCTION: "function"
    CLASS: "class"
    DEFAULT: "default"
    FROM: "from"
    AS: "as"
    // Reserved words after which an expression (and so a regex) may start
    KEYWORD.2: /(?<![\w$.])(?:return|typeof|instanceof|in|new|delete|void|throw|case|do|else|yield|await)(?![\w$])/

    // --- Punctuation ---
    STAR: "*"
    COMMA: ","
    SEMI: ";"
    LPAR: "("
    RPAR: ")"
    LSQB: "["
    RSQB: "]"
    LBRACE: "{"
    RBRACE: "}"

    // --- Terminals ---
    NAME: /(?:[^\W\d]|\$)[\w$]*/
    NUMBER: /\d[\w.]*/
    STRING: /"(?:[^"\\\n]|\\[\s\S])*"|'(?:[^'\\\n]|\\[\s\S])*'/
    TEMPLATE: /`(?:[^`\\]|\\[\s\S])*`/
    PUNCT: /[-+*%<>=!&|^~?:.@#]+/
    DIV: /\/(?![\/*])=?/
    REGEX: /\/(?![\/*])(?:[^\/\\\[\n]|\\.|\[(?:[^\]\\\n]|\\.)*\])+\/[\w$]*/

    HASHBANG.3: /\A#![^\n]*/
    LINE_COMMENT.3: /\/\/[^\n]*/
    BLOCK_COMMENT.3: /\/\*[\s\S]*?\*\//
    WS: /\s+/

    %ignore WS
    %ignore HASHBANG
    %ignore LINE_COMMENT
    %ignore BLOCK_COMMENT
"""

# Parse tree nodes that stand for a module declaration.
IMPORT_DECLARATIONS = ("import_decl", "bare_import")
EXPORT_DECLARATIONS = (
    "export_var",
    "export_function",
    "export_class",
    "export_default_function",
    "export_default_class",
    "export_default",
    "export_named",
    "export_all",
)
