"""
Diagnostics reporting for the VM.

Every problem the engine notices while running a program is recorded as a
Diagnostic and echoed as one line, e.g.:

    warn L3 C12: data pointer has overflowed! (length 30000)
    error L7 C1: no opening bracket to match closing bracket.

Nothing here raises; a program with errors keeps running unless the engine
itself decides to stop.
"""

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, TextIO


class Severity(Enum):
    WARNING = "warn"
    ERROR = "error"


class Category(Enum):
    RANGE = "range"
    DECODE = "decode"
    STRUCTURAL = "structural"
    PRECONDITION = "precondition"


@dataclass(frozen=True)
class Location:
    """1-based line and column of a byte in the program text."""
    line: int = 1
    column: int = 0

    def __str__(self) -> str:
        return f"L{self.line} C{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    category: Category
    message: str
    location: Optional[Location] = None

    def format(self) -> str:
        if self.location is None:
            return f"{self.severity.value}: {self.message}"
        return f"{self.severity.value} {self.location}: {self.message}"


class Diagnostics:
    """Ordered collection of diagnostics with an optional echo stream."""

    def __init__(self, stream: Optional[TextIO] = None, echo: bool = True):
        self.stream = stream
        self.echo = echo
        self.records: List[Diagnostic] = []
        self.subscribers: List[Callable[[Diagnostic], None]] = []

    def report(self, severity: Severity, category: Category, message: str,
               location: Optional[Location] = None) -> Diagnostic:
        diag = Diagnostic(severity, category, message, location)
        self.records.append(diag)
        for callback in self.subscribers:
            callback(diag)
        if self.echo:
            stream = self.stream if self.stream is not None else sys.stderr
            print(diag.format(), file=stream)
        return diag

    def warn(self, category: Category, message: str, location: Optional[Location] = None) -> Diagnostic:
        return self.report(Severity.WARNING, category, message, location)

    def error(self, category: Category, message: str, location: Optional[Location] = None) -> Diagnostic:
        return self.report(Severity.ERROR, category, message, location)

    def subscribe(self, callback: Callable[[Diagnostic], None]) -> None:
        self.subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Diagnostic], None]) -> None:
        if callback in self.subscribers:
            self.subscribers.remove(callback)
