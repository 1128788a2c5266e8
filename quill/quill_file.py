from __future__ import annotations
import asyncio
import os
from typing import TYPE_CHECKING

from quill.quill_datatypes import QuillSystemError

if TYPE_CHECKING:
    from quill.quill_runtime import ExecutionResult, ScriptRunner


def strip_shebang(source: str) -> str:
    """Drops a leading `#!` line, keeping the newline so line numbers stay put."""
    if source.startswith("#!"):
        newline = source.find("\n")
        return "" if newline == -1 else source[newline:]
    return source


def read_script(path: str, encoding: str = "utf-8") -> str:
    try:
        with open(path, "r", encoding=encoding) as f:
            source = f.read()
    except FileNotFoundError as e:
        raise QuillSystemError(f"file not found: {path}", path) from e
    except IsADirectoryError as e:
        raise QuillSystemError(f"is a directory: {path}", path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise QuillSystemError(f"cannot read {path}: {e}", path) from e
    return strip_shebang(source)


async def run_file(runner: ScriptRunner, path: str) -> ExecutionResult:
    """Reads `path` off the event loop and runs it with `runner`.

    I/O failures come back as an error result with error_kind 'system'.
    """
    from quill.quill_runtime import ExecutionResult
    try:
        source = await asyncio.to_thread(read_script, os.fspath(path))
    except QuillSystemError as e:
        msg = f"SystemError: {e}"
        return ExecutionResult(
            status='error',
            error_message=msg,
            error_kind='system',
            side_effects=[{'topics': ['stderr'], 'message': msg}],
        )
    return await runner.handle_script(source)
