"""Exceptions raised by the TOON encoder and decoder."""


class ToonError(ValueError):
    """Base exception for all TOON errors.

    Attributes:
        line: 1-based line number the error was found on, when known.
    """

    def __init__(self, message: str, line: int | None = None):
        if line is not None:
            message = f"Line {line}: {message}"
        super().__init__(message)
        self.line = line


class ArrayLengthMismatch(ToonError):
    """Declared array length differs from the number of values found."""

    def __init__(self, declared: int, actual: int, line: int | None = None):
        super().__init__(
            f"Array length mismatch: declared {declared}, got {actual}", line
        )
        self.declared = declared
        self.actual = actual


class RowWidthMismatch(ToonError):
    """A tabular row has a different number of cells than the header."""

    def __init__(self, expected: int, actual: int, line: int | None = None):
        super().__init__(
            f"Row width mismatch: expected {expected} columns, got {actual}", line
        )
        self.expected = expected
        self.actual = actual


class BlankLineInArrayBlock(ToonError):
    def __init__(self, line: int | None = None):
        super().__init__("Blank line inside array block", line)


class InvalidEscapeSequence(ToonError):
    def __init__(self, char: str, line: int | None = None):
        super().__init__(f"Invalid escape sequence: \\{char}", line)
        self.char = char


class TabInIndentation(ToonError):
    def __init__(self, line: int | None = None):
        super().__init__("Tab character in indentation", line)


class InvalidIndentation(ToonError):
    def __init__(self, size: int, expected: int, line: int | None = None):
        super().__init__(f"Indentation {size} is not a multiple of {expected}", line)
        self.size = size
        self.expected = expected


class UnterminatedString(ToonError):
    def __init__(self, line: int | None = None):
        super().__init__("Unterminated string", line)


class MissingSyntax(ToonError):
    def __init__(self, what: str, line: int | None = None):
        super().__init__(f"Missing {what}", line)
        self.what = what


class InvalidRootStructure(ToonError):
    def __init__(self, line: int | None = None):
        super().__init__("Bare value mixed with structured content at root level", line)


class DelimiterMismatch(ToonError):
    """A row is split by a different delimiter than its header declares."""

    def __init__(self, expected: str, actual: str, line: int | None = None):
        super().__init__(
            f"Delimiter mismatch: header declares {expected!r} but row uses {actual!r}",
            line,
        )
        self.expected = expected
        self.actual = actual


class PathConflict(ToonError):
    def __init__(self, path: str, line: int | None = None):
        super().__init__(f"Path conflict at {path!r}", line)
        self.path = path


class NestingTooDeep(ToonError):
    def __init__(self, limit: int, line: int | None = None):
        super().__init__(f"Nesting deeper than {limit} levels", line)
        self.limit = limit
