"""Lexical signals derived from tool names and call signatures."""

from __future__ import annotations

import re
from typing import Mapping, Optional

# trailing verb of a call signature -> HTTP method
SDK_VERB_TO_HTTP: dict[str, str] = {
    "create": "post",
    "list": "get",
    "fetch": "get",
    "each": "get",
    "page": "get",
    "update": "post",  # the provider updates with POST
    "remove": "delete",
    "delete": "delete",
}
SDK_VERBS = set(SDK_VERB_TO_HTTP)

NAME_POST_VERBS = {"create", "add", "send", "make", "start", "trigger", "associate"}
NAME_DELETE_VERBS = {"delete", "remove"}
NAME_UPDATE_VERBS = {"update", "configure"}

# leading tokens stripped before the noun lookup
ACTION_VERBS = {
    "get", "list", "create", "update", "delete", "start", "check", "send", "make",
    "add", "remove", "associate", "trigger", "search", "configure", "analyze", "lookup",
}

INSTANCE_NAME_VERBS = {"fetch", "update", "remove", "delete", "get", "configure"}
INSTANCE_SDK_VERBS = {"fetch", "update", "remove", "delete"}
COLLECTION_NAME_VERBS = {"list", "create", "add", "send", "make", "start", "trigger", "search"}
COLLECTION_SDK_VERBS = {"list", "create"}

_TRAILING_PLACEHOLDER = re.compile(r"\{([^}]+)\}(?:\.json)?$")


def name_tokens(tool_name: str) -> list[str]:
    return [t for t in tool_name.lower().split("_") if t]


def leading_verb(tool_name: str) -> str:
    tokens = name_tokens(tool_name)
    return tokens[0] if tokens else ""


def sdk_verb(sdk_call: str) -> Optional[str]:
    last = sdk_call.rsplit(".", 1)[-1]
    return last if last in SDK_VERBS else None


def sdk_call_to_http(sdk_call: str) -> Optional[str]:
    verb = sdk_verb(sdk_call)
    return SDK_VERB_TO_HTTP[verb] if verb else None


def tool_name_to_http(tool_name: str) -> str:
    verb = leading_verb(tool_name)
    if verb in NAME_POST_VERBS or verb in NAME_UPDATE_VERBS:
        return "post"
    if verb in NAME_DELETE_VERBS:
        return "delete"
    return "get"


def sdk_resource(sdk_call: str) -> str:
    """
    Last non-verb segment of a call signature (the client identifier excluded):
      client.messages.create -> messages
      client.conferences.participants.list -> participants
    """
    parts = sdk_call.split(".")[1:]
    for part in reversed(parts):
        if part not in SDK_VERBS:
            return part
    return parts[0] if parts else ""


def singularize(word: str) -> str:
    # rough on purpose: no morphological analysis
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith("s") and not word.endswith("ss") and len(word) > 1:
        return word[:-1]
    return word


def tool_noun(tool_name: str, singular: bool = True) -> str:
    """
    Compound noun of a tool name, leading verbs stripped, singularized:
      start_verification -> verification
      list_conference_participants -> conference_participant
    """
    tokens = name_tokens(tool_name)
    i = 0
    while i < len(tokens) and tokens[i] in ACTION_VERBS:
        i += 1
    rest = tokens[i:] or tokens[1:]
    if not rest:
        return ""
    if not singular:
        return "_".join(rest)
    return "_".join(rest[:-1] + [singularize(rest[-1])])


def noun_path_segment(noun: str, table: Mapping[str, str], trailing: bool = True) -> Optional[str]:
    """Look the compound noun up, then (with ``trailing``) its shorter trailing sub-compounds."""
    if not noun:
        return None
    if not trailing:
        return table.get(noun) or None
    parts = noun.split("_")
    for i in range(len(parts)):
        segment = table.get("_".join(parts[i:]))
        if segment:
            return segment
    return None


def tool_path_segment(tool_name: str, table: Mapping[str, str], trailing: bool = True) -> Optional[str]:
    """Path segment for a tool's noun; the as-written form covers words like ``sms``."""
    return noun_path_segment(tool_noun(tool_name), table, trailing) or noun_path_segment(
        tool_noun(tool_name, singular=False), table, trailing
    )


def implies_instance(tool_name: str, sdk_call: str) -> bool:
    return leading_verb(tool_name) in INSTANCE_NAME_VERBS or sdk_verb(sdk_call) in INSTANCE_SDK_VERBS


def implies_collection(tool_name: str, sdk_call: str) -> bool:
    return leading_verb(tool_name) in COLLECTION_NAME_VERBS or sdk_verb(sdk_call) in COLLECTION_SDK_VERBS


def trailing_placeholder(path: str) -> Optional[str]:
    """Name of the placeholder ending the path (``{Sid}`` or ``{Sid}.json``), if any."""
    m = _TRAILING_PLACEHOLDER.search(path)
    return m.group(1) if m else None
