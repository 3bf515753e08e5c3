import json
import re
from typing import Any, Dict, Union

from scoring.errors import MalformedUpstreamOutput

_FENCE = re.compile(r"```(?:json)?\s*")


def strict_json_loads(text: str) -> Dict[str, Any]:
    """First balanced `{...}` block in `text` that parses as a JSON object."""
    text = _FENCE.sub("", text)
    starts = [m.start() for m in re.finditer(r"\{", text)]
    for s in starts:
        depth = 0
        in_string = escaped = False
        for i, ch in enumerate(text[s:], start=s):
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        cand = json.loads(text[s:i + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(cand, dict):
                        return cand
                    break
    raise ValueError("No valid JSON found in output")


def parse_upstream(payload: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """Turn raw model output into a dict with at least `features` and `overall`.

    Raises MalformedUpstreamOutput when the text holds no JSON object or the
    object lacks a `features` list or an `overall` object.
    """
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            data = strict_json_loads(payload)
        except ValueError as e:
            raise MalformedUpstreamOutput(f"model did not return JSON: {payload[:200]!r}") from e
    elif isinstance(payload, dict):
        data = dict(payload)
    else:
        raise MalformedUpstreamOutput(f"unsupported payload type: {type(payload).__name__}")

    if not isinstance(data.get("features"), list):
        raise MalformedUpstreamOutput("model output has no 'features' list")
    if not isinstance(data.get("overall"), dict):
        raise MalformedUpstreamOutput("model output has no 'overall' object")
    return data
