"""Diff engine exception classes.

Contains:
- ParseError: Raised when diff text has malformed headers or hunk bodies
- SelectionError: Raised when a line selection cannot produce a patch
"""


class ParseError(Exception):
    """Raised when unified diff output cannot be parsed."""

    pass


class SelectionError(Exception):
    """Raised when a selection is empty, out of range or crosses a hunk boundary."""

    pass
