"""Filesystem sandbox utilities for safe path resolution."""

import os
from pathlib import Path, PureWindowsPath
from typing import Union

from gateway.domain.encoding import decode_once, has_nested_encoding
from gateway.domain.rejections import (
    DoubleEncoding,
    InvalidInput,
    SandboxIOError,
    Traversal,
)

RawInput = Union[str, bytes]


def _as_text(raw: RawInput) -> str:
    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidInput("input is not valid UTF-8") from exc
    if not isinstance(raw, str):
        raise InvalidInput("input must be text")
    return raw


def _is_absolute(value: str) -> bool:
    # Drive letters and UNC shares count on every host, not only on Windows.
    if value.startswith(("/", "\\")):
        return True
    return bool(PureWindowsPath(value).drive)


def _normalize_segments(value: str) -> list[str]:
    """Collapse '.' and resolve '..' without touching the filesystem."""
    segments: list[str] = []
    for part in value.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not segments:
                raise Traversal("path climbs above the base directory")
            segments.pop()
            continue
        segments.append(part)
    return segments


def _segment_key(path: Path) -> tuple[str, ...]:
    return tuple(os.path.normcase(part) for part in path.parts)


def is_strictly_within(base: Path, candidate: Path) -> bool:
    """Segment-aligned containment: base must be a proper prefix of candidate."""
    base_key = _segment_key(base)
    candidate_key = _segment_key(candidate)
    return (
        len(candidate_key) > len(base_key)
        and candidate_key[: len(base_key)] == base_key
    )


class PathResolver:
    """Map untrusted names to canonical paths confined to one base directory.

    The stages run in a fixed order and each one only narrows what the next
    one sees: decode once, NUL check, nested-encoding check, empty check,
    absolute check, lexical normalization, canonicalization, containment.
    Rejections are raised as :class:`~gateway.domain.rejections.PathRejected`
    subclasses. Nothing is logged and no state changes on failure.
    """

    def __init__(self, base_directory: Union[str, Path], follow_symlinks: bool = True):
        self._base = Path(base_directory).resolve()
        self._follow_symlinks = follow_symlinks

    @property
    def base_directory(self) -> Path:
        return self._base

    @property
    def follow_symlinks(self) -> bool:
        return self._follow_symlinks

    def resolve(self, raw: RawInput) -> Path:
        """Return the canonical path for ``raw`` or raise a typed rejection."""
        decoded = decode_once(_as_text(raw))
        if "\x00" in decoded:
            raise InvalidInput("input contains a NUL character")
        if has_nested_encoding(decoded):
            raise DoubleEncoding("input is percent-encoded more than once")
        if not decoded.strip():
            raise InvalidInput("input is empty")
        if _is_absolute(decoded):
            raise InvalidInput("absolute paths are not accepted")

        segments = _normalize_segments(decoded)
        if not segments:
            raise InvalidInput("input does not name an entry inside the base")

        if not self._follow_symlinks:
            self._reject_symlinks(segments)
        canonical = self._canonicalize(self._base.joinpath(*segments))

        if not is_strictly_within(self._base, canonical):
            raise Traversal("path escapes the base directory")
        return canonical

    def _reject_symlinks(self, segments: list[str]) -> None:
        current = self._base
        for segment in segments:
            current = current / segment
            try:
                if current.is_symlink():
                    raise Traversal("symlinks are not followed inside the base")
                if not current.exists():
                    return
            except OSError as exc:
                raise SandboxIOError("filesystem check failed") from exc

    @staticmethod
    def _canonicalize(candidate: Path) -> Path:
        """Resolve the deepest existing ancestor and re-append the rest."""
        pending: list[str] = []
        current = candidate
        try:
            while not os.path.lexists(current) and current.parent != current:
                pending.append(current.name)
                current = current.parent
            resolved = current.resolve()
        except (OSError, RuntimeError) as exc:
            raise SandboxIOError("canonicalization failed") from exc
        for name in reversed(pending):
            resolved = resolved / name
        return resolved


def resolve_sandbox_path(
    directory: Union[str, Path], user_path: RawInput, follow_symlinks: bool = True
) -> Path:
    """Resolve a user-supplied path inside the configured sandbox."""
    return PathResolver(directory, follow_symlinks).resolve(user_path)
