from .report import format_runtime_error, format_structural_error, format_tape

__all__ = ["format_runtime_error", "format_structural_error", "format_tape"]
