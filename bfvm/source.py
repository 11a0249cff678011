"""
Instruction decoding.

InstructionSource reads the program one byte at a time from a seekable binary
stream and turns each byte into an Intent. Whitespace is skipped silently,
'#' and any other byte are reported as decode errors and skipped. The stream
position can be saved and restored, which is how the engine re-enters loops.

CompiledSource decodes the whole program once up front and keeps a table of
matching brackets, so skipping a loop is a single jump instead of a rescan.
"""

import io
from enum import Enum, auto
from typing import BinaryIO, Dict, List, Optional

from .diagnostics import Category, Diagnostics, Location


class Intent(Enum):
    END_OF_FILE = auto()
    MOVE_POINTER_RIGHT = auto()
    MOVE_POINTER_LEFT = auto()
    INCREMENT_CELL = auto()
    DECREMENT_CELL = auto()
    OUTPUT_CELL = auto()
    INPUT_CELL = auto()
    LOOP_START = auto()
    LOOP_END = auto()


DECODE_TABLE: Dict[int, Intent] = {
    ord('>'): Intent.MOVE_POINTER_RIGHT,
    ord('<'): Intent.MOVE_POINTER_LEFT,
    ord('+'): Intent.INCREMENT_CELL,
    ord('-'): Intent.DECREMENT_CELL,
    ord('.'): Intent.OUTPUT_CELL,
    ord(','): Intent.INPUT_CELL,
    ord('['): Intent.LOOP_START,
    ord(']'): Intent.LOOP_END,
}

WHITESPACE = frozenset(b"\r\n \t")
NEWLINE = ord('\n')
CARRIAGE_RETURN = ord('\r')
COMMENT = ord('#')


class InstructionSource:
    """Streaming decoder over a program's raw bytes."""

    def __init__(self, stream: Optional[BinaryIO] = None, path: Optional[str] = None,
                 diagnostics: Optional[Diagnostics] = None):
        self.path = path
        self.stream = stream
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.line = 1
        self.column = 0
        self.last_byte: Optional[int] = None
        self._owns_stream = False

    @classmethod
    def from_bytes(cls, data: bytes, diagnostics: Optional[Diagnostics] = None) -> "InstructionSource":
        return cls(stream=io.BytesIO(data), diagnostics=diagnostics)

    @classmethod
    def from_path(cls, path: str, diagnostics: Optional[Diagnostics] = None) -> "InstructionSource":
        """Source backed by a file; nothing is read until open() is called."""
        return cls(path=path, diagnostics=diagnostics)

    @property
    def is_open(self) -> bool:
        return self.stream is not None

    def open(self) -> "InstructionSource":
        if self.stream is None and self.path is not None:
            self.stream = open(self.path, "rb")
            self._owns_stream = True
        return self

    def close(self) -> None:
        if self.stream is not None and self._owns_stream:
            self.stream.close()
            self.stream = None
            self._owns_stream = False

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def location(self) -> Location:
        return Location(self.line, self.column)

    @property
    def current_char(self) -> str:
        return "" if self.last_byte is None else chr(self.last_byte)

    def _not_open(self) -> None:
        self.diagnostics.error(Category.PRECONDITION, "program source hasn't been opened yet!", self.location)

    def next(self) -> Intent:
        """Decode the next instruction, or END_OF_FILE once the stream is exhausted."""
        if self.stream is None:
            self._not_open()
            return Intent.END_OF_FILE

        while True:
            raw = self.stream.read(1)
            if not raw:
                return Intent.END_OF_FILE

            byte = raw[0]
            if byte == NEWLINE:
                self.line += 1
                self.column = 0
            elif byte != CARRIAGE_RETURN:
                self.column += 1
            self.last_byte = byte

            if byte in WHITESPACE:
                continue
            intent = DECODE_TABLE.get(byte)
            if intent is not None:
                return intent
            if byte == COMMENT:
                self.diagnostics.error(Category.DECODE, "comments are not supported in standard brainfuck.",
                                       self.location)
            else:
                self.diagnostics.error(Category.DECODE, f"unsupported operator {chr(byte)!r}", self.location)

    def __iter__(self):
        while True:
            intent = self.next()
            if intent is Intent.END_OF_FILE:
                return
            yield intent

    def position(self) -> int:
        if self.stream is None:
            self._not_open()
            return 0
        return self.stream.tell()

    def seek(self, offset: int, location: Optional[Location] = None) -> None:
        if self.stream is None:
            self._not_open()
            return
        self.stream.seek(offset, io.SEEK_SET)
        if location is not None:
            self.line = location.line
            self.column = location.column

    def matching_end(self, position: int) -> Optional[int]:
        """Streaming sources keep no bracket table; the engine has to scan."""
        return None


class CompiledSource:
    """
    Whole-program decode with a precomputed bracket table.

    Positions are instruction indices rather than byte offsets. The
    `legacy` flag pairs each '[' with the first following ']' instead of
    its balancing one, matching the legacy skip-scan of the streaming engine.
    """

    def __init__(self, intents: List[Intent], locations: List[Location], chars: List[str],
                 end_location: Location, legacy: bool = False):
        self.intents = intents
        self.locations = locations
        self.chars = chars
        self.end_location = end_location
        self.index = 0
        self.location = Location()
        self.current_char = ""
        self.matches = self._match_brackets(intents, legacy)

    @classmethod
    def compile(cls, source: InstructionSource, legacy: bool = False) -> "CompiledSource":
        """Decode every instruction of an open InstructionSource, reporting decode errors once."""
        intents: List[Intent] = []
        locations: List[Location] = []
        chars: List[str] = []
        for intent in source:
            intents.append(intent)
            locations.append(source.location)
            chars.append(source.current_char)
        return cls(intents, locations, chars, source.location, legacy=legacy)

    @classmethod
    def from_bytes(cls, data: bytes, diagnostics: Optional[Diagnostics] = None,
                   legacy: bool = False) -> "CompiledSource":
        return cls.compile(InstructionSource.from_bytes(data, diagnostics), legacy=legacy)

    @staticmethod
    def _match_brackets(intents: List[Intent], legacy: bool) -> Dict[int, int]:
        matches: Dict[int, int] = {}
        if legacy:
            pending: List[int] = []
            for i, intent in enumerate(intents):
                if intent is Intent.LOOP_START:
                    pending.append(i)
                elif intent is Intent.LOOP_END:
                    for start in pending:
                        matches[start] = i
                    pending = []
            return matches

        stack: List[int] = []
        for i, intent in enumerate(intents):
            if intent is Intent.LOOP_START:
                stack.append(i)
            elif intent is Intent.LOOP_END and stack:
                matches[stack.pop()] = i
        return matches

    @property
    def is_open(self) -> bool:
        return True

    def open(self) -> "CompiledSource":
        return self

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        pass

    def next(self) -> Intent:
        if self.index >= len(self.intents):
            self.location = self.end_location
            return Intent.END_OF_FILE
        intent = self.intents[self.index]
        self.location = self.locations[self.index]
        self.current_char = self.chars[self.index]
        self.index += 1
        return intent

    def position(self) -> int:
        return self.index

    def seek(self, offset: int, location: Optional[Location] = None) -> None:
        self.index = offset
        if location is not None:
            self.location = location
        elif 0 < offset <= len(self.intents):
            self.location = self.locations[offset - 1]

    def matching_end(self, position: int) -> Optional[int]:
        """Position just past the ']' closing the '[' that ends at `position`."""
        end = self.matches.get(position - 1)
        return None if end is None else end + 1
