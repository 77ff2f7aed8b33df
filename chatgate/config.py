"""INI configuration: sections of string key/value pairs."""

from __future__ import annotations

import configparser
import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

# A section name that cannot occur in a real file, so that "[DEFAULT]" is
# treated like any other section.
_NO_DEFAULT_SECTION = "\x00default"


@dataclass
class SectionInfo:
    """The key/value pairs of one configuration section."""

    data: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, key: str) -> str:
        return self.data.get(key, "")

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def get_value(self, key: str) -> str:
        """Return the value for *key*, or an empty string if it is absent."""
        return self[key]


class ConfigMgr:
    """Configuration made of named sections; missing entries read as empty."""

    def __init__(self, sections: Mapping[str, Mapping[str, str]] | None = None):
        self._sections = {
            name: SectionInfo(dict(values)) for name, values in (sections or {}).items()
        }

    def __getitem__(self, section: str) -> SectionInfo:
        info = self._sections.get(section)
        if info is None:
            return SectionInfo()
        return SectionInfo(dict(info.data))

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._sections))

    def get_value(self, section: str, key: str) -> str:
        """Return ``[section] key``, or an empty string if either is absent."""
        info = self._sections.get(section)
        if info is None:
            return ""
        return info.get_value(key)


def default_config_path(cwd: str | os.PathLike[str] | None = None) -> Path:
    """Return the conventional config location: ``<cwd>/../src/config.ini``."""
    base = Path.cwd() if cwd is None else Path(cwd)
    return base / ".." / "src" / "config.ini"


def load_config(path: str | os.PathLike[str] | None = None) -> ConfigMgr:
    """Read an INI file into a :class:`ConfigMgr`.

    Keys keep their case, values are taken verbatim, and duplicate sections
    or keys are errors.
    """
    if path is None:
        path = default_config_path()
    parser = configparser.ConfigParser(
        interpolation=None,
        delimiters=("=",),
        default_section=_NO_DEFAULT_SECTION,
        strict=True,
        empty_lines_in_values=False,
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    with open(path, encoding="utf-8") as handle:
        parser.read_file(handle)
    return ConfigMgr(
        {name: dict(parser.items(name, raw=True)) for name in parser.sections()}
    )