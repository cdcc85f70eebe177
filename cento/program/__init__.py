"""Block programs: catalog, loading, validation and persistence."""

from .model import (
    ACTIONS,
    BLOCK_COLORS,
    PARAM_KEYS,
    PARAM_RANGES,
    block_to_dict,
    canonical_action,
    clamp_param,
    count_blocks,
    default_params,
    display_label,
    load_program,
    program_to_list,
    walk,
)
from .store import ProgramRecord, ProgramStore, SaveAck, program_id
from .validation import ValidationResult, validate


__all__ = [
    "ACTIONS",
    "BLOCK_COLORS",
    "PARAM_KEYS",
    "PARAM_RANGES",
    "ProgramRecord",
    "ProgramStore",
    "SaveAck",
    "ValidationResult",
    "block_to_dict",
    "canonical_action",
    "clamp_param",
    "count_blocks",
    "default_params",
    "display_label",
    "load_program",
    "program_id",
    "program_to_list",
    "validate",
    "walk",
]
