from .action_executor import ActionExecutor
from .action_handler import ActionHandler
from .program import Category, CheckProgram, Instruction, parse_program, strip_code_fences

__all__ = [
    "ActionExecutor",
    "ActionHandler",
    "Category",
    "CheckProgram",
    "Instruction",
    "parse_program",
    "strip_code_fences",
]
