from __future__ import annotations

import re
from pathlib import Path, PurePath
from urllib.parse import quote

WORD_START_RE = re.compile(r"\b(\w)")
ESCAPE_RE = re.compile(r"(%[0-9A-Fa-f]{2})")
FRAGMENT_SAFE = "/?:@!$&'()*+,;=-._~"


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def path_to_url(path: PurePath | str) -> str:
    parts = path.parts if isinstance(path, PurePath) else PurePath(path).parts
    if not parts or parts == (".",):
        return ""
    return "/".join(parts)


def encode_fragment(text: str) -> str:
    """Percent-encode ``text`` for use as a URL fragment.

    Existing ``%XX`` escapes are kept as they are so that encoding an
    already-encoded URL is a no-op.
    """
    pieces = ESCAPE_RE.split(text)
    return "".join(
        piece if ESCAPE_RE.fullmatch(piece) else quote(piece, safe=FRAGMENT_SAFE) for piece in pieces
    )


def title_case(text: str) -> str:
    return WORD_START_RE.sub(lambda match: match.group(1).upper(), text)


def relative_root(depth: int) -> str:
    return "../" * max(depth, 0)


def output_depth(output_path: Path, output_root: Path) -> int:
    # index.html at the output root has depth 0
    rel = output_path.relative_to(output_root)
    return max(len(rel.parts) - 1, 0)
