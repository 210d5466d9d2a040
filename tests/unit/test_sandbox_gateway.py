"""Unit tests for sandboxed reads and fixture seeding."""

import errno
import logging
import os
import shutil
import threading
from pathlib import Path

import pytest

import gateway.storage.sandbox as sandbox_module
from gateway.bootstrap.config import SAMPLE_FILES
from gateway.domain.rejections import (
    DoubleEncoding,
    InvalidInput,
    NotFound,
    SandboxIOError,
    Traversal,
)
from gateway.storage.sandbox import SandboxGateway

posix_only = pytest.mark.skipif(
    os.name == "nt" or not hasattr(os, "O_NOFOLLOW"),
    reason="requires POSIX no-follow opens",
)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_missing_base_directory_is_created(tmp_path):
    target = tmp_path / "deep" / "files"
    gateway = SandboxGateway(target)
    assert target.is_dir()
    assert gateway.base_directory == target.resolve()


def test_concurrent_base_creation_tolerates_races(tmp_path):
    target = tmp_path / "raced"
    errors: list[BaseException] = []

    def create():
        try:
            SandboxGateway(target)
        except BaseException as error:  # pylint: disable=broad-except
            errors.append(error)

    threads = [threading.Thread(target=create) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert not errors
    assert target.is_dir()


def test_seeded_content_round_trips(gateway, base_dir):
    written = gateway.seed_files(SAMPLE_FILES)

    assert written == [base_dir / "hello.txt", base_dir / "notes" / "readme.md"]
    assert gateway.read_file("hello.txt") == b"Hello from safe file!\n"
    assert gateway.read_file("notes/readme.md") == b"# Readme\nSample readme file"
    assert gateway.read_file("notes%2Freadme.md") == b"# Readme\nSample readme file"


def test_read_with_path_returns_canonical_path(gateway, base_dir):
    gateway.seed_files({"hello.txt": "hi"})
    path, content = gateway.read_with_path("./notes/../hello.txt")
    assert path == base_dir / "hello.txt"
    assert content == b"hi"


def test_seed_is_idempotent(gateway, base_dir):
    mapping = {"a.txt": "one", "dir/b.bin": b"\x00\x01", "dir/sub/c.txt": "three"}
    gateway.seed_files(mapping)
    first = _snapshot(base_dir)
    gateway.seed_files(mapping)
    assert _snapshot(base_dir) == first
    assert first == {"a.txt": b"one", "dir/b.bin": b"\x00\x01", "dir/sub/c.txt": b"three"}


def test_seed_overwrites_existing_content(gateway):
    gateway.seed_files({"a.txt": "old"})
    gateway.seed_files({"a.txt": "new"})
    assert gateway.read_file("a.txt") == b"new"


def test_seed_skips_rejected_names_and_keeps_going(gateway, base_dir, tmp_path, caplog):
    mapping = {
        "../escape.txt": "x",
        "/etc/evil": "x",
        "": "x",
        "%252e%252e%252fx": "x",
        "good.txt": "kept",
    }
    with caplog.at_level(logging.WARNING, logger="path_gateway"):
        written = gateway.seed_files(mapping)

    assert written == [base_dir / "good.txt"]
    assert _snapshot(base_dir) == {"good.txt": b"kept"}
    assert not (tmp_path / "escape.txt").exists()
    reasons = [
        record.reason
        for record in caplog.records
        if getattr(record, "event", None) == "seed_entry_skipped"
    ]
    assert reasons == ["traversal", "invalid_input", "invalid_input", "double_encoding"]


def test_seed_leaves_no_temporary_files(gateway, base_dir):
    gateway.seed_files({"a.txt": "x", "nested/b.txt": "y"})
    assert not [p for p in base_dir.rglob(".seed-*")]


def test_seed_onto_directory_is_io_error_and_cleans_up(gateway, base_dir):
    (base_dir / "notes").mkdir()
    with pytest.raises(SandboxIOError):
        gateway.seed_files({"notes": "cannot replace a directory"})
    assert (base_dir / "notes").is_dir()
    assert not list(base_dir.glob(".seed-*"))


def test_read_missing_file_is_not_found(gateway):
    with pytest.raises(NotFound):
        gateway.read_file("missing.txt")


def test_read_directory_is_not_found(gateway, base_dir):
    (base_dir / "notes").mkdir()
    with pytest.raises(NotFound):
        gateway.read_file("notes")


def test_read_through_regular_file_is_not_found(gateway):
    gateway.seed_files({"hello.txt": "x"})
    with pytest.raises(NotFound):
        gateway.read_file("hello.txt/child")


def test_read_surfaces_resolver_rejections_unchanged(gateway):
    with pytest.raises(Traversal):
        gateway.read_file("../../etc/passwd")
    with pytest.raises(InvalidInput):
        gateway.read_file("")
    with pytest.raises(DoubleEncoding):
        gateway.read_file("%252e%252e%252fetc%252fpasswd")


@posix_only
def test_directory_swapped_for_symlink_after_resolution_is_traversal(
    gateway, base_dir, tmp_path
):
    gateway.seed_files({"data/file.txt": "inside"})
    resolved = gateway.resolve("data/file.txt")

    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "file.txt").write_text("outside")
    shutil.rmtree(base_dir / "data")
    (base_dir / "data").symlink_to(outside, target_is_directory=True)

    with pytest.raises(Traversal):
        gateway._read_confined(resolved)  # pylint: disable=protected-access


@posix_only
def test_file_swapped_for_symlink_after_resolution_is_traversal(
    gateway, base_dir, tmp_path
):
    gateway.seed_files({"file.txt": "inside"})
    resolved = gateway.resolve("file.txt")

    secret = tmp_path / "secret.txt"
    secret.write_text("secret")
    (base_dir / "file.txt").unlink()
    (base_dir / "file.txt").symlink_to(secret)

    with pytest.raises(Traversal):
        gateway._read_confined(resolved)  # pylint: disable=protected-access


@posix_only
def test_read_follows_internal_symlink_to_its_canonical_target(gateway, base_dir):
    gateway.seed_files({"real/a.txt": "a"})
    (base_dir / "alias").symlink_to(base_dir / "real", target_is_directory=True)

    path, content = gateway.read_with_path("alias/a.txt")
    assert path == base_dir / "real" / "a.txt"
    assert content == b"a"


@posix_only
def test_no_follow_gateway_rejects_symlinked_reads(base_dir):
    gateway = SandboxGateway(base_dir, follow_symlinks=False)
    gateway.seed_files({"real/a.txt": "a"})
    (base_dir / "alias").symlink_to(base_dir / "real", target_is_directory=True)

    with pytest.raises(Traversal):
        gateway.read_file("alias/a.txt")
    assert gateway.read_file("real/a.txt") == b"a"


@posix_only
def test_permission_failure_is_io_error_not_traversal(gateway, monkeypatch):
    gateway.seed_files({"hello.txt": "x"})

    def denied(*_args, **_kwargs):
        raise PermissionError(errno.EACCES, "denied")

    monkeypatch.setattr(sandbox_module, "_supports_confined_open", lambda: True)
    monkeypatch.setattr(sandbox_module.os, "open", denied)
    with pytest.raises(SandboxIOError):
        gateway.read_file("hello.txt")


def test_fallback_read_path_when_dir_fd_is_unavailable(gateway, monkeypatch):
    gateway.seed_files({"hello.txt": "fallback"})
    monkeypatch.setattr(sandbox_module, "_supports_confined_open", lambda: False)

    assert gateway.read_file("hello.txt") == b"fallback"
    with pytest.raises(NotFound):
        gateway.read_file("missing.txt")


@posix_only
def test_seeded_files_are_world_readable(gateway, base_dir):
    gateway.seed_files({"hello.txt": "x"})
    mode = (base_dir / "hello.txt").stat().st_mode & 0o777
    assert mode == sandbox_module.SEED_FILE_MODE


@pytest.mark.skipif(not os.path.isdir("/proc/self/fd"), reason="needs /proc/self/fd")
def test_directory_reads_do_not_leak_descriptors(gateway, base_dir):
    (base_dir / "notes").mkdir()
    before = len(os.listdir("/proc/self/fd"))
    for _ in range(5):
        with pytest.raises(NotFound):
            gateway.read_file("notes")
    assert len(os.listdir("/proc/self/fd")) == before


@posix_only
@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires named pipes")
def test_fifo_inside_base_is_not_found_without_blocking(gateway, base_dir):
    os.mkfifo(base_dir / "pipe")
    with pytest.raises(NotFound):
        gateway.read_file("pipe")


def test_file_over_read_limit_is_io_error(base_dir):
    gateway = SandboxGateway(base_dir, max_read_bytes=4)
    gateway.seed_files({"small.txt": "1234", "big.txt": "12345"})
    assert gateway.read_file("small.txt") == b"1234"
    with pytest.raises(SandboxIOError):
        gateway.read_file("big.txt")


def test_failed_seed_write_does_not_stop_later_entries(gateway, base_dir, caplog):
    mapping = {"a.txt": "x", "a.txt/b.txt": "y", "c.txt": "z"}
    with caplog.at_level(logging.ERROR, logger="path_gateway"):
        with pytest.raises(SandboxIOError):
            gateway.seed_files(mapping)

    assert _snapshot(base_dir) == {"a.txt": b"x", "c.txt": b"z"}
    failures = [
        record.requested_name
        for record in caplog.records
        if getattr(record, "event", None) == "seed_entry_failed"
    ]
    assert failures == ["a.txt/b.txt"]
