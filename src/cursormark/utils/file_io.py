"""Text file helpers used when rewriting document front matter."""

from __future__ import annotations

import codecs
import os
import tempfile
from pathlib import Path

__all__ = ["read_text", "write_text", "detect_newline"]

_BOM_MAP: dict[bytes, str] = {
    codecs.BOM_UTF8: "utf-8-sig",
    codecs.BOM_UTF16_LE: "utf-16-le",
    codecs.BOM_UTF16_BE: "utf-16-be",
}


def read_text(path: Path | str, *, encoding: str | None = None) -> str:
    """Read a text file, honouring a byte-order mark and normalizing newlines to ``\\n``."""

    raw = Path(path).read_bytes()
    text = raw.decode(encoding or _detect_encoding(raw))
    if text.startswith("\ufeff"):
        text = text[1:]
    return _normalize_newlines(text)


def detect_newline(path: Path | str) -> str:
    """Return the newline convention used by ``path`` (``\\n`` when undetermined)."""

    raw = Path(path).read_bytes()
    if b"\r\n" in raw:
        return "\r\n"
    if b"\r" in raw and b"\n" not in raw:
        return "\r"
    return "\n"


def write_text(
    path: Path | str,
    content: str,
    *,
    encoding: str = "utf-8",
    newline: str = "\n",
) -> Path:
    """Atomically replace ``path`` with ``content`` using the requested newline style."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    normalized = _apply_newline_policy(content, newline)
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "w", encoding=encoding, newline="") as handle:
            handle.write(normalized)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target


def _detect_encoding(raw: bytes) -> str:
    for bom, encoding in _BOM_MAP.items():
        if raw.startswith(bom):
            return encoding
    return "utf-8"


def _normalize_newlines(text: str) -> str:
    if "\r" not in text:
        return text
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _apply_newline_policy(content: str, newline: str) -> str:
    normalized = _normalize_newlines(content)
    if newline == "\n":
        return normalized
    if newline in {"\r\n", "\r"}:
        return normalized.replace("\n", newline)
    raise ValueError(f"Unsupported newline policy: {newline!r}")
