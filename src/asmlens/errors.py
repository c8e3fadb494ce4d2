"""
asmlens exception classes.

Only input and format errors halt a run. Unresolvable instructions and
unreadable source files are represented as missing data instead.
"""


class AsmLensError(Exception):
    """Base exception for all asmlens errors."""
    pass


class InputError(AsmLensError):
    """Invalid user input, such as a malformed filter pattern."""
    pass


class FormatError(AsmLensError):
    """The executable container or its debug info cannot be parsed."""
    def __init__(self, path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class NotAnExecutableError(FormatError):
    """The file is not a recognized executable image."""
    pass


class UnsupportedFormatError(FormatError):
    """The container or architecture is recognized but not supported."""
    pass
