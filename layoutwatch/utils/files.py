"""
File helpers with cancellation checkpoints.

Reads are chunked so a cancelled token aborts a long read between chunks;
the ``with`` block closes the handle before ``CycleCancelled`` propagates.
"""

from __future__ import annotations

from pathlib import Path

from layoutwatch.runtime.cancellation import CancellationToken

READ_CHUNK_SIZE = 64 * 1024


def read_bytes(path: Path, token: CancellationToken | None = None) -> bytes:
    """Read a whole file, checking ``token`` before every chunk."""
    chunks: list[bytes] = []
    with open(path, "rb") as fh:
        while True:
            if token is not None:
                token.raise_if_cancelled()
            chunk = fh.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def write_new_file(path: Path, data: bytes, token: CancellationToken | None = None) -> None:
    """
    Create ``path`` exclusively and write ``data`` to it.

    Raises FileExistsError if the file already exists; an existing file is
    never touched. If writing fails after creation (including cancellation),
    the partial file is removed.

    Side Effects:
        - Creates a file on disk
    """
    with open(path, "xb") as fh:
        try:
            for offset in range(0, len(data), READ_CHUNK_SIZE):
                if token is not None:
                    token.raise_if_cancelled()
                fh.write(data[offset : offset + READ_CHUNK_SIZE])
        except BaseException:
            fh.close()
            path.unlink(missing_ok=True)
            raise
