"""Output formatters for classification results."""

import re

from quickjot.models.result import CanonicalResult, Item


def _escape_markdown(text: str) -> str:
    """Escape markdown special characters to prevent formatting issues.

    Escapes: \\ ` * _ { } [ ] ( ) # + - . ! |
    """
    special_chars = r'\\`*_{}[\]()#+\-.!|'
    return re.sub(f'([{re.escape(special_chars)}])', r'\\\1', text)


def format_duration(minutes: int) -> str:
    """Format minutes as "45m", "2h" or "1h 30m"."""
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def _item_facts(item: Item) -> list[tuple[str, str]]:
    facts = []
    if item.due_iso:
        facts.append(("Due", item.due_iso))
    if item.duration_min is not None:
        facts.append(("Duration", format_duration(item.duration_min)))
    if item.location:
        facts.append(("Location", item.location))
    return facts


def to_json(result: CanonicalResult, indent: int = 2) -> str:
    """Export result as canonical JSON with proper Unicode handling."""
    # Non-ASCII titles are written as UTF-8, not \u escapes
    return result.model_dump_json(indent=indent)


def to_markdown(result: CanonicalResult) -> str:
    """Export result as a markdown checklist grouped in input order."""
    lines = [f"# {_escape_markdown(result.suggested_overall_category)}", ""]
    lines.append(f"**Confidence:** {result.confidence:.0%}")
    lines.append("")

    if not result.items:
        lines.append("_No items._")

    for item in result.items:
        marker = "- [ ]" if item.type in ("Task", "To-do") else "-"
        lines.append(f"{marker} **{_escape_markdown(item.type)}:** {_escape_markdown(item.title)}")
        for label, value in _item_facts(item):
            lines.append(f"  - {label}: {_escape_markdown(value)}")
        for subtask in item.subtasks:
            lines.append(f"  - [ ] {_escape_markdown(subtask)}")

    if result.warnings:
        lines.append("")
        lines.append("## Warnings")
        lines.append("")
        for warning in result.warnings:
            lines.append(f"- {_escape_markdown(warning)}")

    return "\n".join(lines) + "\n"


def to_text(result: CanonicalResult) -> str:
    """Export result as plain text, one item per line."""
    lines = []
    for item in result.items:
        facts = ", ".join(f"{label.lower()} {value}" for label, value in _item_facts(item))
        line = f"[{item.type}] {item.title}"
        lines.append(f"{line} ({facts})" if facts else line)
        lines.extend(f"    - {subtask}" for subtask in item.subtasks)
    return "\n".join(lines) + "\n" if lines else ""


def format_result(result: CanonicalResult, output_format: str) -> str:
    """Format result by format name or file extension."""
    if result is None:
        raise ValueError("Result cannot be None")
    if not output_format or not output_format.strip():
        raise ValueError("Output format cannot be empty")

    formatters = {
        "json": to_json,
        "md": to_markdown,
        "markdown": to_markdown,
        "txt": to_text,
        "text": to_text,
    }

    formatter = formatters.get(output_format.lower().lstrip("."))
    if not formatter:
        raise ValueError(
            f"Unknown format: {output_format}. Supported: {', '.join(sorted(formatters))}"
        )
    return formatter(result)
