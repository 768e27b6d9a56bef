from __future__ import annotations

import json
from typing import List, Tuple

from .api import Stream


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def fmt_stream_message(game_name: str, stream: Stream) -> str:
    """Discord message for a newly started stream: a code block plus the watch link."""
    return (
        "```\n"
        f"Game:      {game_name}\n"
        f"Streamer:  {stream.broadcaster_name}\n"
        f"Title:     {_quote(stream.title)}\n"
        f"Language:  {stream.language}"
        "```"
        f"{stream.url}"
    )


def fmt_game_table(name: str, candidates: List[Tuple[str, str]]) -> str:
    id_width = max([len("ID")] + [len(gid) for gid, _ in candidates]) + 2
    lines = [
        f"Found multiple possible Game IDs for {name}.",
        f"{'ID':<{id_width}}Name",
        f"{'--':<{id_width}}----",
    ]
    for gid, gname in candidates:
        lines.append(f"{gid:<{id_width}}{gname}")
    return "\n".join(lines)
