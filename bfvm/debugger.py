"""
Step-by-step debugger.

Listens to a running Engine and, before each instruction, shows the tape
around the pointer, the instruction's source location and what it is about
to do. The StepGovernor decides whether to wait for the operator; commands
are read one line at a time (space/empty line, d, f, g, j, k).
"""

import sys
from typing import List, Optional, TextIO

from .engine import Engine, EngineEvent, EventKind
from .governor import HELP_LINE, Command, Decision, StepGovernor, parse_command
from .source import Intent


def describe(engine: Engine, intent: Intent) -> str:
    """Human readable description of what `intent` will do to the current state."""
    tape = engine.tape
    p = tape.pointer
    v = tape.read()
    if intent is Intent.MOVE_POINTER_RIGHT:
        return f"Move pointer to right ({p} -> {p + 1})"
    if intent is Intent.MOVE_POINTER_LEFT:
        return f"Move pointer to left ({p} -> {p - 1})"
    if intent is Intent.INCREMENT_CELL:
        return f"Increase value at position {p} ({v} -> {v + 1})"
    if intent is Intent.DECREMENT_CELL:
        return f"Decrease value at position {p} ({v} -> {v - 1})"
    if intent is Intent.OUTPUT_CELL:
        return f"Print out current value as character (value {v})"
    if intent is Intent.INPUT_CELL:
        return f"Input next character input into position {p}"
    if intent is Intent.LOOP_START:
        if v == 0:
            return "Skipping loop. Moving execution forward to closing bracket."
        return "Beginning a loop"
    if intent is Intent.LOOP_END:
        if not engine.stack:
            return "Closing bracket without an opening bracket"
        if v == 0:
            return "Breaking out of a loop"
        return (f"Moving execution back to {engine.stack[-1].location} "
                f"until value at position {p} is zero (currently {v})")
    return "?? unknown intent ??"


class Debugger:
    """Interactive front end driving a StepGovernor from an engine's events."""

    def __init__(self, engine: Engine, governor: Optional[StepGovernor] = None,
                 display: Optional[TextIO] = None, commands: Optional[TextIO] = None,
                 show_memory_range: int = 10):
        self.engine = engine
        self.governor = governor if governor is not None else StepGovernor()
        self.display = display if display is not None else sys.stdout
        self.commands = commands if commands is not None else sys.stdin
        self.show_memory_range = show_memory_range
        self.output: List[str] = []
        engine.line_input = True
        engine.subscribe(self.handle)

    def handle(self, event: EngineEvent) -> None:
        if event.kind is EventKind.PENDING:
            self.before_instruction(event.intent)
        elif event.kind is EventKind.OUTPUT:
            self.output.append(event.detail)

    def before_instruction(self, intent: Intent) -> None:
        description = describe(self.engine, intent)
        decision = self.governor.decide(intent, self.engine.tape.read())
        self.show_state(intent, description)

        if decision is Decision.AWAIT_INPUT:
            self._print("Enter one character to step the program.")
        elif decision is Decision.PROMPT:
            self._print(HELP_LINE)
            self.governor.apply(self.read_command())
        else:
            self._print(self.governor.status())

    def read_command(self) -> Command:
        """Read operator lines until one maps to a command; end of input means continuous."""
        while True:
            line = self.commands.readline()
            if line == "":
                return Command.CONTINUOUS
            command = parse_command(line.rstrip("\r\n"))
            if command is not None:
                return command

    def show_state(self, intent: Intent, description: str) -> None:
        engine = self.engine
        tape = engine.tape
        start, end = tape.window(self.show_memory_range)

        memory_vals = []
        memory_ptrs = []
        memory_addrs = []
        for i in range(start, end + 1):
            memory_vals.append(f"{tape[i]:3d}")
            memory_ptrs.append(" ^ " if i == tape.pointer else "   ")
            memory_addrs.append(f"{i:3d}")

        self._print("")
        self._print("Memory:   [" + "|".join(memory_vals) + "]")
        self._print("Pointer:   " + " ".join(memory_ptrs))
        self._print("Address:   " + " ".join(memory_addrs))
        if self.output:
            self._print(f"Output:   {''.join(self.output)!r}")
        else:
            self._print("Output:   (empty)")
        self._print(f"{engine.location}: {engine.current_char}    {description}")

    def _print(self, text: str) -> None:
        print(text, file=self.display)
        self.display.flush()
