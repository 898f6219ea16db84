from __future__ import annotations

from pathlib import Path


class RunLog:
    """
    Append-only run log: each line goes to stdout and to logs/pipeline.log
    inside the run directory.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def write(self, msg: str) -> None:
        print(msg, flush=True)
        with open(self.path, "a") as f:
            f.write(msg + "\n")

    def info(self, msg: str) -> None:
        self.write(f"[INFO] {msg}")

    def warn(self, msg: str) -> None:
        self.write(f"[WARN] {msg}")
