from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from apisync.config.defaults import BREAKING_MARKER
from apisync.domain.models import ChangelogEntry

# [2026-02-18] Version 2.6.4
_VERSION_HEADER = re.compile(r"^\[(\d{4}-\d{2}-\d{2})\]\s+Version\s+(\S+)", re.MULTILINE)
# **Api** / **Messaging**
_DOMAIN_HEADER = re.compile(r"^\*\*(\w[\w\s]*?)\*\*\s*$")
_BULLET = re.compile(r"^\s*-\s+(\S.*)$")


@dataclass(frozen=True)
class VersionBlock:
    version: str
    date: str
    content: str


def split_version_blocks(text: str) -> list[VersionBlock]:
    """Slice the changelog at version headers; each block runs to the next header."""
    headers = list(_VERSION_HEADER.finditer(text))
    blocks: list[VersionBlock] = []
    for i, m in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(text)
        blocks.append(VersionBlock(version=m.group(2), date=m.group(1), content=text[m.start():end]))
    return blocks


def parse_version_block(block: VersionBlock, breaking_marker: str = BREAKING_MARKER) -> list[ChangelogEntry]:
    entries: list[ChangelogEntry] = []
    domain = ""

    for line in block.content.splitlines():
        header = _DOMAIN_HEADER.match(line)
        if header:
            domain = header.group(1).strip()
            continue

        bullet = _BULLET.match(line)
        if not domain or not bullet:
            continue

        description = bullet.group(1).strip()
        # sub-items that only list paths
        if description.startswith("`/"):
            continue

        is_breaking = breaking_marker in description
        if is_breaking:
            description = " ".join(description.replace(breaking_marker, " ").split())

        entries.append(
            ChangelogEntry(
                version=block.version,
                date=block.date,
                domain=domain,
                description=description,
                is_breaking=is_breaking,
            )
        )
    return entries


def parse_changelog(
    text: str,
    from_version: Optional[str],
    to_version: str,
    breaking_marker: str = BREAKING_MARKER,
) -> list[ChangelogEntry]:
    """Entries from ``to_version``'s block back to, but excluding, ``from_version``'s.

    The changelog lists newest releases first. With no ``from_version`` every
    block from ``to_version`` onward is collected. An unknown ``to_version``
    yields nothing.
    """
    entries: list[ChangelogEntry] = []
    collecting = False
    for block in split_version_blocks(text):
        if block.version == to_version:
            collecting = True
        if collecting and from_version and block.version == from_version:
            break
        if collecting:
            entries.extend(parse_version_block(block, breaking_marker))
    return entries


def breaking_changes(entries: list[ChangelogEntry]) -> list[ChangelogEntry]:
    return [e for e in entries if e.is_breaking]
