"""A brainfuck virtual machine that runs programs straight off a seekable byte stream."""

from .config import VMConfig, ConfigError, load_config
from .diagnostics import Category, Diagnostic, Diagnostics, Location, Severity
from .engine import Engine, EngineEvent, EventKind, LoopFrame, RunResult, run_program
from .governor import Command, Decision, Regime, StepGovernor
from .source import CompiledSource, InstructionSource, Intent
from .tape import Tape

__version__ = "0.1.0"
