"""
Error handling utilities for the minipack bundler.

Every failure while building a bundle is fatal. The exceptions below carry
enough structure (which file, which line) to tell the user where the build
broke, and keep the original exception as ``__cause__``.
"""


class BuildError(Exception):
    """Base exception for bundling errors with file, line numbers and hints."""

    kind = "build"

    def __init__(self, message, file_path=None, line_number=None, column=None,
                 context=None, suggestion=None):
        self.message = message
        self.file_path = file_path
        self.line_number = line_number
        self.column = column
        self.context = context  # The offending line
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with origin, context and suggestion."""
        lines = [f"Build failed with {self.kind}: {self.message}"]
        if self.file_path:
            origin = f"originating at {self.file_path}"
            if self.line_number:
                origin += f", line {self.line_number}"
                if self.column:
                    origin += f", column {self.column}"
            lines.append(origin)

        if self.context:
            lines.append(f"   > {self.context}")

        if self.suggestion:
            lines.append(f"   hint: {self.suggestion}")

        return "\n".join(lines)


class FileAccessError(BuildError):
    """A source file is missing or cannot be read."""
    kind = "file-access"


class ParseError(BuildError):
    """Source text is not valid under the configured dialect."""
    kind = "parse"


class TransformError(BuildError):
    """The transformer rejected a syntax tree (e.g. unknown preset)."""
    kind = "transform"


class CycleError(BuildError):
    """The import graph loops back on itself."""
    kind = "cycle"

    def __init__(self, chain, suggestion=None):
        self.chain = list(chain)
        super().__init__(
            "circular import " + " -> ".join(self.chain),
            file_path=self.chain[0] if self.chain else None,
            suggestion=suggestion or "Break the cycle, or build with allow_cycles and cache enabled",
        )


def get_line_context(source_code, line_number):
    """Extract the line of code from source by line number (1-based)."""
    if not source_code or line_number is None:
        return None
    source_lines = source_code.split('\n')
    if 0 < line_number <= len(source_lines):
        return source_lines[line_number - 1].strip()
    return None
