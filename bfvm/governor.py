"""
Step governor for interactive runs.

Decides, before each instruction, whether the operator has to be asked
again. Three regimes:

    COUNTING(n)      run n more instructions unattended, then ask
    UNTIL_LOOP_EXIT  run until a ']' is about to exit its loop, then ask
    CONTINUOUS       never ask again

Input instructions always stop for the operator, since they need a typed
character anyway.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from .source import Intent


class Regime(Enum):
    COUNTING = "counting"
    UNTIL_LOOP_EXIT = "until_loop_exit"
    CONTINUOUS = "continuous"


class Decision(Enum):
    PROCEED = "proceed"
    PROMPT = "prompt"
    AWAIT_INPUT = "await_input"


class Command(Enum):
    STEP = 1
    STEP_5 = 5
    STEP_25 = 25
    STEP_100 = 100
    UNTIL_LOOP_EXIT = "until_loop_exit"
    CONTINUOUS = "continuous"


COMMAND_KEYS: Dict[str, Command] = {
    " ": Command.STEP,
    "d": Command.STEP_5,
    "f": Command.STEP_25,
    "g": Command.STEP_100,
    "j": Command.UNTIL_LOOP_EXIT,
    "k": Command.CONTINUOUS,
}

HELP_LINE = ("Press space to step the system.    D = +5 steps, F = +25 steps, "
             "G = +100 steps, J = until loop ends, K = continuous")


def parse_command(key: str) -> Optional[Command]:
    """Map one operator key (or a typed line) to a Command; None if unknown."""
    if key.strip() == "":
        return Command.STEP
    return COMMAND_KEYS.get(key.strip()[0].lower())


@dataclass
class StepGovernor:
    regime: Regime = Regime.COUNTING
    remaining: int = 0

    def decide(self, intent: Intent, cell_value: int) -> Decision:
        """Advance the state machine for the instruction about to execute."""
        if self.regime is Regime.COUNTING and self.remaining > 0:
            self.remaining -= 1
            if intent is Intent.INPUT_CELL:
                return Decision.AWAIT_INPUT
            return Decision.PROCEED

        if self.regime is Regime.UNTIL_LOOP_EXIT and intent is Intent.LOOP_END and cell_value == 0:
            self.regime = Regime.COUNTING
            self.remaining = 0

        if intent is Intent.INPUT_CELL:
            return Decision.AWAIT_INPUT
        if self.regime is Regime.COUNTING:
            return Decision.PROMPT
        return Decision.PROCEED

    def apply(self, command: Command) -> None:
        """Apply an operator command at a prompt; the pending instruction consumes one step."""
        if command is Command.CONTINUOUS:
            self.regime = Regime.CONTINUOUS
            self.remaining = 0
        elif command is Command.UNTIL_LOOP_EXIT:
            self.regime = Regime.UNTIL_LOOP_EXIT
            self.remaining = 0
        else:
            self.regime = Regime.COUNTING
            self.remaining = command.value - 1

    def status(self) -> str:
        if self.regime is Regime.CONTINUOUS:
            return "Continuing program to completion..."
        if self.regime is Regime.UNTIL_LOOP_EXIT:
            return "Waiting for loop exit..."
        return f"Skipping {self.remaining} steps..."
