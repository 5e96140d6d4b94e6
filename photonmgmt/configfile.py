"""INI-style configuration files with repeated sections and repeated keys."""

from __future__ import annotations

import glob
import os
from dataclasses import dataclass, field

DEFAULT_SECTION = "DEFAULT"


@dataclass
class Section:
    """A named section; each key keeps its value followed by any shadow values."""

    name: str
    keys: dict[str, list[str]] = field(default_factory=dict)

    def has_key(self, key: str) -> bool:
        return key in self.keys

    def has_value(self, value: str) -> bool:
        """Tell whether any key's main value equals value."""
        return any(values[0] == value for values in self.keys.values())

    def get(self, key: str) -> str:
        values = self.keys.get(key)
        return values[0] if values else ""

    def set(self, key: str, value: str) -> None:
        """Set the main value of key, creating it when missing."""
        values = self.keys.get(key)
        if values:
            values[0] = value
        else:
            self.keys[key] = [value]

    def add(self, key: str, value: str) -> None:
        """Add key, as a shadow value when it already exists."""
        self.keys.setdefault(key, []).append(value)

    def delete_key(self, key: str) -> None:
        self.keys.pop(key, None)


def _section_name(name: str) -> str:
    return name or DEFAULT_SECTION


def _unquote(raw: str) -> str:
    for quote in ('"""', '"', "`"):
        if len(raw) >= 2 * len(quote) and raw.startswith(quote) and raw.endswith(quote):
            return raw[len(quote):-len(quote)]
    for marker in ("#", ";"):
        index = raw.find(marker)
        if index >= 0:
            raw = raw[:index]
    return raw.strip()


def _parse(text: str) -> list[Section]:
    sections = [Section(DEFAULT_SECTION)]
    current = sections[0]
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("["):
            end = line.find("]")
            if end < 0:
                raise ValueError(f"line {number}: unclosed section: {line}")
            name = line[1:end].strip()
            if not name:
                raise ValueError(f"line {number}: empty section name")
            if name == DEFAULT_SECTION:
                current = sections[0]
            else:
                current = Section(name)
                sections.append(current)
            continue
        positions = [i for i in (line.find("="), line.find(":")) if i >= 0]
        if not positions:
            raise ValueError(f"line {number}: key-value delimiter not found: {line}")
        split = min(positions)
        key = line[:split].strip()
        if not key:
            raise ValueError(f"line {number}: empty key name")
        current.add(key, _unquote(line[split + 1:].strip()))
    return sections


def _quote(value: str) -> str:
    if "\n" in value or "`" in value:
        return f'"""{value}"""'
    if "#" in value or ";" in value or value != value.strip():
        return f"`{value}`"
    return value


def _render(sections: list[Section]) -> str:
    chunks = []
    for section in sections:
        if section.name == DEFAULT_SECTION and not section.keys:
            continue
        lines = [] if section.name == DEFAULT_SECTION else [f"[{section.name}]"]
        width = max((len(key) for key in section.keys), default=0)
        for key, values in section.keys.items():
            lines.extend(f"{key.ljust(width)} = {_quote(value)}" for value in values)
        chunks.append("\n".join(lines) + "\n\n")
    return "".join(chunks)


@dataclass
class Meta:
    """A loaded configuration file and the section most recently created."""

    path: str
    sections: list[Section] = field(default_factory=lambda: [Section(DEFAULT_SECTION)])
    section: Section | None = None

    def sections_by_name(self, name: str) -> list[Section]:
        """Return every section with this name, raising LookupError when there is none."""
        name = _section_name(name)
        found = [s for s in self.sections if s.name == name]
        if not found:
            raise LookupError(f"section '{name}' does not exist")
        return found

    def _first_or_new(self, name: str) -> Section:
        try:
            return self.sections_by_name(name)[0]
        except LookupError:
            return self._append(name)

    def _append(self, name: str) -> Section:
        if not name:
            raise ValueError("empty section name")
        created = Section(name)
        self.sections.append(created)
        return created

    def save(self) -> None:
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write(_render(self.sections))

    def set_key_section_string(self, section: str, key: str, value: str) -> None:
        self._first_or_new(section).set(key, value)

    def set_key_section_uint(self, section: str, key: str, value: int) -> None:
        if value < 0:
            raise ValueError("value must not be negative")
        self._first_or_new(section).set(key, str(value))

    def get_key_section_string(self, section: str, key: str) -> str:
        try:
            return self.sections_by_name(section)[0].get(key)
        except LookupError:
            return ""

    def get_key_section_uint(self, section: str, key: str) -> int:
        """Return the key as an unsigned number, or 0 when it is missing or not one."""
        value = self.get_key_section_string(section, key)
        return int(value) if value.isascii() and value.isdigit() else 0

    def new_key_to_section_string(self, section: str, key: str, value: str) -> None:
        self._first_or_new(section).add(key, value)

    def new_section(self, section: str) -> None:
        self.section = self._append(section)

    def remove_section(self, section: str, key: str, value: str) -> None:
        """Drop the first section of this name if it holds key and value, else all of them."""
        sections = self.sections_by_name(section)
        first = sections[0]
        if first.has_key(key) and first.has_value(value):
            self.sections.remove(first)
        else:
            self.sections = [s for s in self.sections if s not in sections]

    def remove_key_from_section_string(self, section: str, key: str, value: str) -> None:
        """Delete key from the first matching section; save and raise LookupError if none."""
        for candidate in self.sections_by_name(section):
            if candidate.has_key(key) and candidate.has_value(value):
                candidate.delete_key(key)
                return
        self.save()
        raise LookupError("not found")

    def _current(self) -> Section:
        if self.section is None:
            raise ValueError("no section has been created")
        return self.section

    def set_key_to_new_section_string(self, key: str, value: str) -> None:
        self._current().add(key, value)

    def set_key_to_new_section_uint(self, key: str, value: int) -> None:
        if value < 0:
            raise ValueError("value must not be negative")
        self._current().add(key, str(value))


def load(path: str) -> Meta:
    with open(path, encoding="utf-8") as handle:
        return Meta(path=path, sections=_parse(handle.read()))


def parse_key_from_section_string(path: str, section: str, key: str) -> str:
    """Return a key's value from a file, raising LookupError when it is empty or absent."""
    value = load(path).get_key_section_string(section, key)
    if not value:
        raise LookupError("not found")
    return value


def _matches(directory: str, pattern: str) -> list[str]:
    return sorted(glob.glob(os.path.join(directory, pattern)))


def remove_files_glob(directory: str, pattern: str, section: str, key: str, value: str) -> None:
    """Delete every matching file that has a section holding key and value."""
    for path in _matches(directory, pattern):
        meta = load(path)
        if any(s.has_key(key) and s.has_value(value) for s in meta.sections_by_name(section)):
            try:
                os.remove(meta.path)
            except OSError:
                pass


def remove_files_section_glob(
    directory: str, pattern: str, section: str, key: str, value: str
) -> None:
    """Delete key from a matching section in every matching file and save each file."""
    for path in _matches(directory, pattern):
        meta = load(path)
        try:
            meta.remove_key_from_section_string(section, key, value)
        except LookupError:
            pass
        meta.save()