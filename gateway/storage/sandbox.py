"""Sandboxed file reads and fixture seeding routed through the path resolver."""

import errno
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import BinaryIO, Mapping, Optional, Union

from gateway.bootstrap.config import MAX_READ_BYTES
from gateway.domain.correlation_id import CorrelationLoggerAdapter
from gateway.domain.rejections import (
    NotFound,
    PathRejected,
    SandboxIOError,
    Traversal,
)
from gateway.domain.resolver import PathResolver, RawInput

SANDBOX_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("path_gateway.storage.sandbox"), {}
)

_O_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)
_O_DIRECTORY = getattr(os, "O_DIRECTORY", 0)
_O_NONBLOCK = getattr(os, "O_NONBLOCK", 0)
_MISSING_ERRNOS = {errno.ENOENT, errno.ENOTDIR}
SEED_FILE_MODE = 0o644


def _supports_confined_open() -> bool:
    return bool(_O_NOFOLLOW) and os.open in os.supports_dir_fd


class SandboxGateway:
    """Read and seed files strictly inside one base directory.

    The base directory is created when missing and never changes afterwards.
    Every operation resolves its input through :class:`PathResolver` first.
    """

    def __init__(
        self,
        base_directory: Union[str, Path],
        follow_symlinks: bool = True,
        max_read_bytes: int = MAX_READ_BYTES,
    ):
        Path(base_directory).mkdir(parents=True, exist_ok=True)
        self._resolver = PathResolver(base_directory, follow_symlinks)
        self._max_read_bytes = max_read_bytes

    @property
    def base_directory(self) -> Path:
        return self._resolver.base_directory

    def resolve(self, raw: RawInput) -> Path:
        return self._resolver.resolve(raw)

    def read_file(self, raw: RawInput) -> bytes:
        """Return the bytes stored under ``raw``."""
        return self.read_with_path(raw)[1]

    def read_with_path(self, raw: RawInput) -> tuple[Path, bytes]:
        """Resolve ``raw`` and read it, returning the canonical path and content."""
        resolved = self._resolver.resolve(raw)
        if _supports_confined_open():
            content = self._read_confined(resolved)
        else:
            content = self._read_recanonicalized(resolved)
        if SANDBOX_LOGGER.logger.isEnabledFor(logging.DEBUG):
            SANDBOX_LOGGER.debug(
                "File read",
                extra={"event": "file_read", "bytes_out": len(content)},
            )
        return resolved, content

    def _read_confined(self, resolved: Path) -> bytes:
        """Open by walking from the base with no-follow semantics at each segment."""
        parts = resolved.relative_to(self.base_directory).parts
        dir_fd = self._open_at(str(self.base_directory), os.O_RDONLY | _O_DIRECTORY)
        try:
            for part in parts[:-1]:
                next_fd = self._open_at(
                    part, os.O_RDONLY | _O_DIRECTORY | _O_NOFOLLOW, dir_fd
                )
                os.close(dir_fd)
                dir_fd = next_fd
            file_fd = self._open_at(
                parts[-1], os.O_RDONLY | _O_NOFOLLOW | _O_NONBLOCK, dir_fd
            )
        finally:
            os.close(dir_fd)

        try:
            self._check_regular(os.fstat(file_fd))
            handle = os.fdopen(file_fd, "rb")
        except PathRejected:
            os.close(file_fd)
            raise
        except OSError as exc:
            os.close(file_fd)
            raise SandboxIOError("file read failed") from exc

        with handle:
            try:
                return self._read_capped(handle)
            except OSError as exc:
                raise SandboxIOError("file read failed") from exc

    def _check_regular(self, info: os.stat_result) -> None:
        if not stat.S_ISREG(info.st_mode):
            raise NotFound("target is not a regular file")
        if info.st_size > self._max_read_bytes:
            raise SandboxIOError("file exceeds the read limit")

    def _read_capped(self, handle: BinaryIO) -> bytes:
        content = handle.read(self._max_read_bytes + 1)
        if len(content) > self._max_read_bytes:
            raise SandboxIOError("file exceeds the read limit")
        return content

    @staticmethod
    def _open_at(name: str, flags: int, dir_fd: Optional[int] = None) -> int:
        try:
            return os.open(name, flags, dir_fd=dir_fd)
        except OSError as exc:
            if dir_fd is not None and exc.errno in _MISSING_ERRNOS | {errno.ELOOP}:
                try:
                    is_link = stat.S_ISLNK(os.lstat(name, dir_fd=dir_fd).st_mode)
                except OSError:
                    is_link = False
                if is_link:
                    raise Traversal("symlink appeared after resolution") from exc
                if exc.errno != errno.ELOOP:
                    raise NotFound("no such file") from exc
            elif exc.errno in _MISSING_ERRNOS:
                raise NotFound("no such file") from exc
            raise SandboxIOError("file open failed") from exc

    def _read_recanonicalized(self, resolved: Path) -> bytes:
        try:
            if resolved.resolve() != resolved:
                raise Traversal("path changed after resolution")
            if not resolved.is_file():
                raise NotFound("no such file")
            with open(resolved, "rb") as handle:
                self._check_regular(os.fstat(handle.fileno()))
                return self._read_capped(handle)
        except FileNotFoundError as exc:
            raise NotFound("no such file") from exc
        except OSError as exc:
            raise SandboxIOError("file read failed") from exc

    def seed_files(self, mapping: Mapping[str, Union[str, bytes]]) -> list[Path]:
        """Write fixture files, skipping names the resolver rejects.

        Each accepted entry is replaced atomically, so re-running with the same
        mapping leaves the same final file set. A failed write does not stop the
        remaining entries; :class:`SandboxIOError` is raised once all of them
        have been attempted. Returns the written paths.
        """
        written: list[Path] = []
        skipped = 0
        failed = 0
        for name, content in mapping.items():
            try:
                target = self._resolver.resolve(name)
            except PathRejected as rejection:
                skipped += 1
                SANDBOX_LOGGER.warning(
                    "Seed entry skipped",
                    extra={
                        "event": "seed_entry_skipped",
                        "requested_name": name,
                        "reason": rejection.reason.value,
                    },
                )
                continue
            payload = content.encode("utf-8") if isinstance(content, str) else content
            try:
                self._write_atomic(target, payload)
            except SandboxIOError as error:
                failed += 1
                SANDBOX_LOGGER.error(
                    "Seed entry failed",
                    extra={
                        "event": "seed_entry_failed",
                        "requested_name": name,
                        "reason": error.reason.value,
                        "error_type": type(error.__cause__).__name__,
                    },
                )
                continue
            written.append(target)

        SANDBOX_LOGGER.info(
            "Seeding complete",
            extra={
                "event": "seed_complete",
                "seeded": len(written),
                "skipped": skipped,
                "failed": failed,
            },
        )
        if failed:
            raise SandboxIOError(f"{failed} seed entries could not be written")
        return written

    @staticmethod
    def _write_atomic(target: Path, payload: bytes) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=target.parent, prefix=".seed-")
        except OSError as exc:
            raise SandboxIOError("could not prepare seed target") from exc
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temp_name, SEED_FILE_MODE)
            os.replace(temp_name, target)
        except OSError as exc:
            try:
                os.unlink(temp_name)
            except FileNotFoundError:
                pass
            raise SandboxIOError("seed write failed") from exc
