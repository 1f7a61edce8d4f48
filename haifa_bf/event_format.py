from __future__ import annotations

from .vm_events import OutputEmitted, StepTraced


def _char(value: int) -> str:
    return chr(value) if 32 <= value < 127 else f"\\x{value:02x}"


def format_vm_event(event: object) -> str:
    if isinstance(event, StepTraced):
        return (
            f"#{event.step} pc={event.pc} {event.instruction!r} "
            f"dp={event.data_pointer} cell={event.cell}"
        )
    if isinstance(event, OutputEmitted):
        return f"#{event.step} pc={event.pc} output {event.value} '{_char(event.value)}'"
    return str(event)


__all__ = ["format_vm_event"]
