"""
File I/O utilities: the three-segment note codec and durable writes.

A stored note is three segments joined by literal ``---`` delimiters::

    ---
    <YAML metadata block>
    ---
    <raw body text>

All functions operate on explicit paths, with no implicit directory lookups.
"""

from __future__ import annotations

import os
import shutil
from typing import Any

import yaml

from jot.core.exceptions import ParseError

DELIMITER = "---"
SEGMENT_COUNT = 3


def split_document(text: str) -> tuple[dict[str, Any], str]:
    """
    Split note text into its YAML metadata and body.

    The text is split on ``---`` into at most three pieces; anything other
    than exactly three is a ParseError. The newline that follows the closing
    delimiter and the single newline written after the body are removed.

    Returns:
        (metadata_dict, body)

    Raises:
        ParseError: Missing metadata section, stray text before it, or
            undecodable YAML.
    """
    chunks = text.split(DELIMITER, SEGMENT_COUNT - 1)
    if len(chunks) != SEGMENT_COUNT:
        raise ParseError("unable to find metadata section")

    preamble, raw_meta, body = chunks
    if preamble.strip():
        raise ParseError("unable to find metadata section: text found before the opening delimiter")

    try:
        metadata = yaml.safe_load(raw_meta) or {}
    except yaml.YAMLError as e:
        raise ParseError(f"unable to deserialize metadata: {e}") from e
    if not isinstance(metadata, dict):
        raise ParseError(f"metadata section must be a mapping, got {type(metadata).__name__}")

    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    if body.endswith("\n"):
        body = body[:-1]
    return metadata, body


def render_metadata(metadata: dict[str, Any]) -> str:
    """YAML text of a metadata block, without delimiters."""
    return yaml.safe_dump(metadata, default_flow_style=False, sort_keys=False, allow_unicode=True).strip()


def render_document(metadata: dict[str, Any], body: str) -> str:
    """Render metadata and body into the three-segment note format."""
    return f"{DELIMITER}\n{render_metadata(metadata)}\n{DELIMITER}\n{body}\n"


def durable_write(filepath: str, content: str, encoding: str = "utf-8") -> None:
    """
    Write content so it is on disk when this returns.

    Opens with truncate-or-create, writes, flushes and fsyncs before close.
    A directory squatting on ``filepath`` is removed first. Any OSError
    propagates to the caller.
    """
    if os.path.isdir(filepath):
        shutil.rmtree(filepath)
    with open(filepath, "w", encoding=encoding) as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())


def read_text(filepath: str, encoding: str = "utf-8") -> str:
    with open(filepath, encoding=encoding) as f:
        return f.read()
