"""YAML front-matter access for documents stored on disk.

Reads use the ``ruamel.yaml`` safe loader; writes go through the round-trip
loader so unrelated keys, their order, and comments survive a patch.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from .errors import MetadataReadError, MetadataWriteError
from .host import DocumentMetadata, MetadataPatchFn
from .utils.file_io import detect_newline, read_text, write_text

__all__ = ["FENCE", "FrontmatterSplit", "FrontmatterStore", "parse_frontmatter", "split_frontmatter"]

LOGGER = logging.getLogger(__name__)

FENCE = "---"


@dataclass(slots=True)
class FrontmatterSplit:
    """A document separated into its front-matter block and body."""

    block: Optional[str]
    body: str
    line_count: int = 0

    @property
    def has_block(self) -> bool:
        return self.block is not None


def split_frontmatter(text: str) -> FrontmatterSplit:
    """Split ``text`` into the fenced YAML block and the remaining body.

    ``line_count`` is the number of lines the block occupies, fences included,
    so body line ``n`` sits at document line ``line_count + n``. Unterminated
    blocks are treated as body text.

    This is one more than the index of the closing fence. Positions written by
    tools that offset by that index decode one line lower here. Since stored
    lines are clamped at 0, a caret on the first body line is stored as
    column 0 and restores at the start of that line.
    """

    working = (text or "").lstrip("\ufeff")
    lines = working.split("\n")
    if not lines or lines[0].rstrip() != FENCE:
        return FrontmatterSplit(block=None, body=working)

    closing_index = None
    for idx, line in enumerate(lines[1:], start=1):
        if line.rstrip() == FENCE:
            closing_index = idx
            break
    if closing_index is None:
        return FrontmatterSplit(block=None, body=working)

    block = "\n".join(lines[1:closing_index])
    body = "\n".join(lines[closing_index + 1 :])
    return FrontmatterSplit(block=block, body=body, line_count=closing_index + 1)


def parse_frontmatter(block: Optional[str]) -> Dict[str, Any]:
    """Return the mapping stored in ``block``; anything unparsable yields ``{}``."""

    if not block or not block.strip():
        return {}
    parser = YAML(typ="safe")
    parser.allow_duplicate_keys = False
    try:
        loaded = parser.load(block)
    except YAMLError as exc:
        LOGGER.debug("Front matter is not valid YAML: %s", exc)
        return {}
    if isinstance(loaded, dict):
        return dict(loaded)
    return {}


class FrontmatterStore:
    """Front-matter reader/writer rooted at a vault directory."""

    def __init__(self, root: Path | str | None = None) -> None:
        self._root = Path(root).expanduser() if root is not None else None

    @property
    def root(self) -> Path | None:
        return self._root

    def resolve(self, path: Path | str) -> Path:
        candidate = Path(path).expanduser()
        if candidate.is_absolute() or self._root is None:
            return candidate
        return self._root / candidate

    def read(self, path: Path | str) -> DocumentMetadata:
        """Return the parsed fields and block line count for ``path``."""

        target = self.resolve(path)
        try:
            text = read_text(target)
        except FileNotFoundError:
            LOGGER.debug("Document %s does not exist; treating as empty", target)
            return DocumentMetadata.empty()
        except (OSError, UnicodeDecodeError) as exc:
            raise MetadataReadError(target, str(exc)) from exc

        split = split_frontmatter(text)
        if not split.has_block:
            return DocumentMetadata.empty()
        return DocumentMetadata(fields=parse_frontmatter(split.block), block_line_count=split.line_count)

    def update(self, path: Path | str, patch_fn: MetadataPatchFn) -> None:
        """Apply ``patch_fn`` to the stored mapping and rewrite the document atomically."""

        target = self.resolve(path)
        try:
            text = read_text(target)
            newline = detect_newline(target)
        except FileNotFoundError as exc:
            raise MetadataWriteError(target, "document does not exist") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise MetadataWriteError(target, str(exc)) from exc

        split = split_frontmatter(text)
        yaml = _round_trip_yaml()
        data: Any = CommentedMap()
        if split.has_block and split.block and split.block.strip():
            try:
                data = yaml.load(split.block)
            except YAMLError as exc:
                raise MetadataWriteError(target, f"front matter is not valid YAML ({exc})") from exc
            if data is None:
                data = CommentedMap()
            elif not isinstance(data, dict):
                raise MetadataWriteError(target, "front matter is not a mapping")

        patch_fn(data)

        buffer = io.StringIO()
        try:
            yaml.dump(data, buffer)
        except YAMLError as exc:
            raise MetadataWriteError(target, f"unable to serialize front matter ({exc})") from exc

        rendered = f"{FENCE}\n{buffer.getvalue()}{FENCE}\n{split.body}"
        try:
            write_text(target, rendered, newline=newline)
        except OSError as exc:
            raise MetadataWriteError(target, str(exc)) from exc
        LOGGER.debug("Updated front matter of %s (keys=%s)", target, list(data))


def _round_trip_yaml() -> YAML:
    yaml = YAML(typ="rt")
    yaml.preserve_quotes = True
    yaml.default_flow_style = False
    yaml.width = 4096
    return yaml
