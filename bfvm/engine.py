"""
Execution engine.

Pulls intents from an instruction source and applies them to a tape. Loops
are run without building a syntax tree: entering a loop bookmarks the stream
position just after its '[', and a ']' over a nonzero cell seeks back to that
bookmark. A '[' over a zero cell scans forward to its ']' without executing.

Problems are reported to a Diagnostics collector and the run continues,
except for an unclosed '[' found while skipping, which stops the run.
"""

import io
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, TextIO, Union

from .config import SKIP_SCAN_LEGACY, VMConfig
from .diagnostics import Category, Diagnostic, Diagnostics, Location, Severity
from .source import CompiledSource, InstructionSource, Intent
from .tape import Tape

Source = Union[InstructionSource, CompiledSource]


class EventKind(Enum):
    PENDING = "pending"
    APPLIED = "applied"
    OUTPUT = "output"
    LOOP_ENTERED = "loop_entered"
    LOOP_SKIPPED = "loop_skipped"
    LOOP_REPEATED = "loop_repeated"
    LOOP_EXITED = "loop_exited"
    DIAGNOSTIC = "diagnostic"


@dataclass
class EngineEvent:
    kind: EventKind
    intent: Optional[Intent]
    location: Location
    pointer: int
    value: int
    detail: Any = None


@dataclass(frozen=True)
class LoopFrame:
    """Bookmark for a loop: byte offset after its '[' and the '[' location."""
    position: int
    location: Location


@dataclass
class RunResult:
    output: str
    steps: int
    halted: bool = False
    hit_step_limit: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]


Listener = Callable[[EngineEvent], None]


class Engine:
    def __init__(self, source: Source, config: Optional[VMConfig] = None,
                 tape: Optional[Tape] = None, diagnostics: Optional[Diagnostics] = None,
                 stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self.config = config if config is not None else VMConfig()
        self.source = source
        if diagnostics is None:
            diagnostics = getattr(source, "diagnostics", None)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        if isinstance(source, InstructionSource):
            source.diagnostics = self.diagnostics
        self.tape = tape if tape is not None else Tape(self.config.tape_length, self.config.cell_max)
        self.stdin = stdin
        self.stdout = stdout

        self.stack: List[LoopFrame] = []
        self.output: List[str] = []
        self.listeners: List[Listener] = []
        self.current: Optional[Intent] = None
        self.steps = 0
        self.halted = False
        self.finished = False
        self.hit_step_limit = False
        self.line_input = False
        self._attached = False

    @classmethod
    def from_bytes(cls, data: bytes, config: Optional[VMConfig] = None, **kwargs) -> "Engine":
        config = config if config is not None else VMConfig()
        diagnostics = kwargs.pop("diagnostics", None)
        if diagnostics is None:
            diagnostics = Diagnostics(echo=False)
        if config.precompile:
            source = CompiledSource.from_bytes(data, diagnostics, legacy=config.skip_scan == SKIP_SCAN_LEGACY)
        else:
            source = InstructionSource.from_bytes(data, diagnostics)
        return cls(source, config=config, diagnostics=diagnostics, **kwargs)

    @classmethod
    def from_path(cls, path: str, config: Optional[VMConfig] = None, **kwargs) -> "Engine":
        config = config if config is not None else VMConfig()
        diagnostics = kwargs.pop("diagnostics", None)
        if diagnostics is None:
            diagnostics = Diagnostics()
        source = InstructionSource.from_path(path, diagnostics)
        if config.precompile:
            with source:
                source = CompiledSource.compile(source, legacy=config.skip_scan == SKIP_SCAN_LEGACY)
        return cls(source, config=config, diagnostics=diagnostics, **kwargs)

    def subscribe(self, listener: Listener) -> None:
        self.listeners.append(listener)

    @property
    def location(self) -> Location:
        return self.source.location

    @property
    def current_char(self) -> str:
        return self.source.current_char

    def _emit(self, kind: EventKind, intent: Optional[Intent] = None, detail: Any = None) -> None:
        if not self.listeners:
            return
        event = EngineEvent(kind, intent, self.location, self.tape.pointer, self.tape.read(), detail)
        for listener in self.listeners:
            listener(event)

    def _on_diagnostic(self, diag: Diagnostic) -> None:
        self._emit(EventKind.DIAGNOSTIC, self.current, diag)

    def _attach(self) -> None:
        if not self._attached:
            self.diagnostics.subscribe(self._on_diagnostic)
            self._attached = True

    def _detach(self) -> None:
        if self._attached:
            self.diagnostics.unsubscribe(self._on_diagnostic)
            self._attached = False

    def run(self) -> RunResult:
        """Execute until end of program, an unclosed loop, or the step limit."""
        self.source.open()
        try:
            while self.step():
                pass
        finally:
            self.source.close()
            self._detach()
        return self.result()

    def result(self) -> RunResult:
        return RunResult(
            output="".join(self.output),
            steps=self.steps,
            halted=self.halted,
            hit_step_limit=self.hit_step_limit,
            diagnostics=list(self.diagnostics.records),
        )

    def step(self) -> bool:
        """Decode and apply one instruction. Returns False once the run is over."""
        if self.finished:
            return False
        self._attach()
        limit = self.config.step_limit
        if limit is not None and self.steps >= limit:
            self.hit_step_limit = True
            self.finished = True
            return False

        intent = self.source.next()
        if intent is Intent.END_OF_FILE:
            self.finished = True
            return False

        self.current = intent
        self._emit(EventKind.PENDING, intent)
        self.apply(intent)
        self.steps += 1
        self._emit(EventKind.APPLIED, intent)
        if self.halted:
            self.finished = True
            return False
        return True

    def apply(self, intent: Intent) -> None:
        tape = self.tape
        if intent is Intent.MOVE_POINTER_RIGHT:
            if tape.move(1):
                self.diagnostics.warn(Category.RANGE, f"data pointer has overflowed! (length {tape.length})",
                                      self.location)
        elif intent is Intent.MOVE_POINTER_LEFT:
            if tape.move(-1):
                self.diagnostics.warn(Category.RANGE, f"data pointer has underflowed! (length {tape.length})",
                                      self.location)
        elif intent is Intent.INCREMENT_CELL:
            tape.adjust(1)
        elif intent is Intent.DECREMENT_CELL:
            tape.adjust(-1)
        elif intent is Intent.OUTPUT_CELL:
            self._output(chr(tape.read()))
        elif intent is Intent.INPUT_CELL:
            self._input()
        elif intent is Intent.LOOP_START:
            self._loop_start()
        elif intent is Intent.LOOP_END:
            self._loop_end()

    def _output(self, char: str) -> None:
        self.output.append(char)
        stream = self.stdout if self.stdout is not None else sys.stdout
        stream.write(char)
        stream.flush()
        self._emit(EventKind.OUTPUT, Intent.OUTPUT_CELL, char)

    def _input(self) -> None:
        stream = self.stdin if self.stdin is not None else sys.stdin
        if self.line_input:
            # a console delivers a whole line; the rest of it is not program input
            char = stream.readline().rstrip("\r\n")[:1]
        else:
            char = stream.read(1)
        if char:
            self.tape.write(ord(char))

    def _loop_start(self) -> None:
        self.stack.append(LoopFrame(self.source.position(), self.location))
        if self.tape.read() != 0:
            self._emit(EventKind.LOOP_ENTERED, Intent.LOOP_START)
            return

        self._emit(EventKind.LOOP_SKIPPED, Intent.LOOP_START)
        if not self._skip_loop():
            self.diagnostics.error(Category.STRUCTURAL, "no closing bracket to match opening bracket.",
                                   self.location)
            self.halted = True
            return
        self.stack.pop()

    def _skip_loop(self) -> bool:
        """Move past the ']' closing the loop just entered. False at end of file."""
        target = self.source.matching_end(self.source.position())
        if target is not None:
            self.source.seek(target)
            return True

        legacy = self.config.skip_scan == SKIP_SCAN_LEGACY
        depth = 0
        while True:
            intent = self.source.next()
            if intent is Intent.END_OF_FILE:
                return False
            if intent is Intent.LOOP_END:
                if legacy or depth == 0:
                    return True
                depth -= 1
            elif intent is Intent.LOOP_START and not legacy:
                depth += 1

    def _loop_end(self) -> None:
        if not self.stack:
            self.diagnostics.error(Category.STRUCTURAL, "no opening bracket to match closing bracket.",
                                   self.location)
            return

        if self.tape.read() == 0:
            self.stack.pop()
            self._emit(EventKind.LOOP_EXITED, Intent.LOOP_END)
            return

        frame = self.stack[-1]
        self.source.seek(frame.position, frame.location)
        self._emit(EventKind.LOOP_REPEATED, Intent.LOOP_END, frame.location)


def run_program(code: Union[str, bytes], input_data: str = "", config: Optional[VMConfig] = None,
                stdout: Optional[TextIO] = None) -> RunResult:
    """Run a program held in memory against a string of input."""
    data = code.encode("utf-8") if isinstance(code, str) else code
    engine = Engine.from_bytes(data, config=config, stdin=io.StringIO(input_data),
                               stdout=stdout if stdout is not None else io.StringIO())
    return engine.run()
