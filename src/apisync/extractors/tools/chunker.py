from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from apisync.config.settings import ScannerSettings
from apisync.domain.models import ToolInventoryEntry

_IDENT = re.compile(r"[A-Za-z_$][\w$]*")
_PARAM_LINE = re.compile(r"^([A-Za-z_$][\w$]*)\s*:")
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}
_QUOTES = {"'", '"', "`"}

# a chain stops at these even when more segments follow (e.g. .create(...).then)
_TERMINAL_VERBS = {"create", "list", "fetch", "update", "remove", "delete", "each", "page"}


def _definition_start(definition_call: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(definition_call)}\s*\(")


def _skip_string(text: str, i: int) -> int:
    """``text[i]`` is a quote; return the index just past the closing quote."""
    quote = text[i]
    i += 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            return i
        i += 1
    return i


def _skip_group(text: str, i: int) -> int:
    """``text[i]`` opens a bracket; return the index just past its match, or -1."""
    stack = [_OPENERS[text[i]]]
    i += 1
    while i < len(text):
        ch = text[i]
        if ch in _QUOTES:
            i = _skip_string(text, i)
            continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if ch != stack[-1]:
                return -1
            stack.pop()
            if not stack:
                return i + 1
        i += 1
    return -1


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _depth_delta(line: str) -> int:
    delta = 0
    i = 0
    while i < len(line):
        ch = line[i]
        if ch in _QUOTES:
            i = _skip_string(line, i)
            continue
        if ch in "{[":
            delta += 1
        elif ch in "}]":
            delta -= 1
        i += 1
    return delta


def split_tool_blocks(source: str, definition_call: str = "createTool") -> list[str]:
    """One block per definition call: from its start to the next start (or EOF)."""
    starts = [m.start() for m in _definition_start(definition_call).finditer(source)]
    blocks: list[str] = []
    for i, start in enumerate(starts):
        end = starts[i + 1] if i + 1 < len(starts) else len(source)
        blocks.append(source[start:end])
    return blocks


def extract_tool_name(block: str, definition_call: str = "createTool") -> Optional[str]:
    m = re.search(rf"\b{re.escape(definition_call)}\s*\(\s*['\"`](\w+)['\"`]", block)
    return m.group(1) if m else None


def _read_call_chain(text: str, i: int) -> list[str]:
    """Read ``a(x).b.c(...)`` starting at ``i``; argument groups are dropped."""
    segments: list[str] = []
    while True:
        m = _IDENT.match(text, i)
        if not m:
            break
        segments.append(m.group())
        j = _skip_ws(text, m.end())
        if j < len(text) and text[j] == "(":
            if m.group() in _TERMINAL_VERBS:
                break
            end = _skip_group(text, j)
            if end < 0:
                break
            k = _skip_ws(text, end)
            if k < len(text) and text[k] == ".":
                # instance identifier argument, e.g. messages(sid).fetch
                i = _skip_ws(text, k + 1)
                continue
            break
        if j < len(text) and text[j] == ".":
            i = _skip_ws(text, j + 1)
            continue
        break
    return segments


def extract_sdk_calls(block: str, client_name: str = "client") -> list[str]:
    """Canonical dotted call signatures on the provider client, in first-seen order."""
    calls: list[str] = []
    for m in re.finditer(rf"\b{re.escape(client_name)}\s*\.", block):
        segments = _read_call_chain(block, _skip_ws(block, m.end()))
        if not segments:
            continue
        call = ".".join([client_name, *segments])
        if call not in calls:
            calls.append(call)
    return calls


def extract_schema_params(block: str, schema_marker: str = "z.object(") -> list[str]:
    """Top-level keys of the first parameter schema object in ``block``.

    Nested object/array shapes are not expanded: their key is recorded, their
    contents are skipped.
    """
    idx = block.find(schema_marker)
    if idx < 0:
        return []
    open_idx = _skip_ws(block, idx + len(schema_marker))
    if open_idx >= len(block) or block[open_idx] != "{":
        return []
    close_idx = _skip_group(block, open_idx)
    if close_idx < 0:
        return []

    body = block[open_idx + 1 : close_idx - 1]
    params: list[str] = []
    depth = 0
    for line in body.splitlines():
        stripped = line.strip()
        if depth == 0:
            m = _PARAM_LINE.match(stripped)
            if m and m.group(1) not in params:
                params.append(m.group(1))
        depth = max(0, depth + _depth_delta(stripped))
    return params


def extract_tools_from_source(
    source: str,
    file: str = "",
    settings: Optional[ScannerSettings] = None,
) -> list[ToolInventoryEntry]:
    """
    Lexically extract tool definitions like:
      createTool('send_sms', 'desc', z.object({...}), async (...) => { await client.messages.create(...) })
    Does not parse or execute the source.
    """
    s = settings or ScannerSettings()
    tools: list[ToolInventoryEntry] = []
    for block in split_tool_blocks(source, s.definition_call):
        name = extract_tool_name(block, s.definition_call)
        if name is None:
            continue
        tools.append(
            ToolInventoryEntry(
                name=name,
                file=file,
                sdk_calls=extract_sdk_calls(block, s.client_name),
                params=extract_schema_params(block, s.schema_marker),
            )
        )
    return tools


def extract_tools_from_file(
    path: Path,
    file: Optional[str] = None,
    settings: Optional[ScannerSettings] = None,
    max_bytes: int = 2_000_000,
) -> list[ToolInventoryEntry]:
    data = path.read_bytes()[:max_bytes]
    source = data.decode("utf-8", errors="ignore")
    return extract_tools_from_source(source, file=file if file is not None else path.name, settings=settings)
