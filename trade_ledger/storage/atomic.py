from __future__ import annotations

import os
import time
from pathlib import Path

import pandas as pd


class FileLock:
    """Exclusive lock file next to ``path``; serializes writers of one ledger file."""

    def __init__(self, path: str | Path, timeout: float = 5.0, poll: float = 0.02):
        self.lock = Path(str(path) + ".lock")
        self.timeout = timeout
        self.poll = poll

    def __enter__(self) -> FileLock:
        deadline = time.time() + self.timeout
        while True:
            try:
                # atomic create; fails if exists
                fd = os.open(self.lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if time.time() >= deadline:
                    raise TimeoutError(f"lock busy: {self.lock}") from None
                time.sleep(self.poll)
                continue
            os.write(fd, str(os.getpid()).encode())
            os.close(fd)
            return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.lock.unlink(missing_ok=True)


def atomic_write_parquet(path: str | Path, df: pd.DataFrame, index: bool = False) -> None:
    """Write to a temp file, then os.replace over the target."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(p.name + f".tmp{os.getpid()}")
    try:
        df.to_parquet(tmp, index=index)
        os.replace(tmp, p)
    finally:
        tmp.unlink(missing_ok=True)
