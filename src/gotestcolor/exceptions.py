"""
Custom exceptions for gotestcolor
"""

from typing import Optional


class GotestError(Exception):
    """Base exception for all gotestcolor errors"""
    pass


class IndexBuildError(GotestError):
    """The test index could not be built from the project tree"""
    pass


class GoSyntaxError(GotestError):
    """A Go source file could not be parsed"""

    def __init__(self, message: str, filename: Optional[str] = None, line: Optional[int] = None):
        self.filename = filename
        self.line = line
        location = filename or "<source>"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")
        self.message = message


class ProcessError(GotestError):
    """Error with the spawned test process"""
    pass


class ConfigError(GotestError):
    """Configuration file could not be loaded or is invalid"""
    pass
