from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from textwrap import wrap
from typing import Union

DEFAULT_WRAP_WIDTH = 100
DEFAULT_LABEL_WIDTH = 18
DEFAULT_INDENT = "    "

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _coerce_items(fields: FieldMapping) -> list[tuple[str, object]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _stringify(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


class LogBlockBuilder:
    """Builds a titled, aligned multi-line block for a single log record."""

    def __init__(
        self,
        title: str,
        *,
        wrap_width: int = DEFAULT_WRAP_WIDTH,
        label_width: int = DEFAULT_LABEL_WIDTH,
        indent: str = DEFAULT_INDENT,
    ) -> None:
        self.title = title
        self.wrap_width = wrap_width
        self.label_width = label_width
        self.indent = indent
        self.lines: list[str] = [title, "-" * len(title)]

    def add_fields(self, fields: FieldMapping | None) -> None:
        items = _coerce_items(fields) if fields else []
        if not items:
            return

        longest = max(len(str(key)) for key, _ in items)
        label_width = max(min(longest, self.label_width), 6)
        value_width = max(self.wrap_width - len(self.indent) - label_width - 2, 24)

        for key, value in items:
            chunks = wrap(_stringify(value), width=value_width) or [""]
            self.lines.append(f"{self.indent}{str(key):<{label_width}}: {chunks[0]}")
            for chunk in chunks[1:]:
                self.lines.append(f"{self.indent}{'':<{label_width}}  {chunk}")

    def add_section(self, heading: str, items: Iterable[str], *, empty_label: str = "(none)") -> None:
        self.lines.append(f"{heading}:")
        entries = [item for item in items if item is not None]
        if not entries:
            self.lines.append(f"{self.indent}{empty_label}")
            return
        for entry in entries:
            self.lines.append(f"{self.indent}- {_stringify(entry)}")

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping) -> str:
    builder = LogBlockBuilder(title)
    builder.add_fields(fields)
    return builder.render()
