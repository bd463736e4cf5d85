"""Key/value option lists as read from data and network configuration files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union

_INT_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(
    r"\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?"
    r"|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_WHITESPACE = re.compile(r"[ \t\n\r]")


def _leading_int(text: str) -> int:
    """Parse the leading integer of ``text``; 0 when there is none."""
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else 0


def _leading_float(text: str) -> float:
    """Parse the leading float of ``text``; 0.0 when there is none."""
    match = _FLOAT_RE.match(text)
    return float(match.group(1)) if match else 0.0


def _strip(line: str) -> str:
    """Remove every whitespace character from a configuration line."""
    return _WHITESPACE.sub("", line)


@dataclass
class _Option:
    key: str
    val: Optional[str]
    used: bool = False


class OptionList:
    """An ordered collection of options; lookups return the first match."""

    def __init__(self) -> None:
        self._items: list[_Option] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[tuple[str, Optional[str]]]:
        return ((item.key, item.val) for item in self._items)

    def insert(self, key: str, val: Optional[str]) -> None:
        """Append an option."""
        self._items.append(_Option(key, val))

    def find(self, key: str) -> Optional[str]:
        """Return the value of the first option named ``key`` and mark it used."""
        for item in self._items:
            if item.key == key:
                item.used = True
                return item.val
        return None

    def find_str(self, key: str, default: Optional[str]) -> Optional[str]:
        value = self.find(key)
        if value:
            return value
        if default:
            print(f"{key}: Using default '{default}'")
        return default

    def find_int(self, key: str, default: int) -> int:
        value = self.find(key)
        if value:
            return _leading_int(value)
        print(f"{key}: Using default '{default}'")
        return default

    def find_int_quiet(self, key: str, default: int) -> int:
        value = self.find(key)
        if value:
            return _leading_int(value)
        return default

    def find_float(self, key: str, default: float) -> float:
        value = self.find(key)
        if value:
            return _leading_float(value)
        print(f"{key}: Using default '{default:f}'")
        return default

    def find_float_quiet(self, key: str, default: float) -> float:
        value = self.find(key)
        if value:
            return _leading_float(value)
        return default

    def unused(self) -> list[tuple[str, Optional[str]]]:
        """Report and return the options that were never looked up."""
        result = [(item.key, item.val) for item in self._items if not item.used]
        for key, val in result:
            print(f"Unused field: '{key} = {val}'")
        return result


def read_option(line: str, options: OptionList) -> bool:
    """Split ``key=value`` and insert it; False when '=' ends the line."""
    key, sep, val = line.partition("=")
    if sep and not val:
        return False
    options.insert(key, val if sep else None)
    return True


def read_data_cfg(path: Union[str, Path]) -> OptionList:
    """Read a flat ``key=value`` data configuration file."""
    options = OptionList()
    with open(path, "r") as handle:
        for number, raw in enumerate(handle, start=1):
            line = _strip(raw)
            if not line or line[0] in "#;":
                continue
            if not read_option(line, options):
                print(f"Config file error line {number}, could parse: {line}")
    return options