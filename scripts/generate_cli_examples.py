from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_ARGS = ["--mode", "image", "--width", "160", "--height", "120"]


@dataclass
class Example:
    name: str
    args: list[str]
    expected: Path

    def full_args(self) -> list[str]:
        return [sys.executable, "explore.py", *self.args, "--output", str(self.expected)]


def _example(name: str, filename: str, *args: str) -> Example:
    return Example(name=name, args=list(args), expected=EXAMPLES_ROOT / name / filename)


EXAMPLES: list[Example] = [
    _example("default", "julia.png", *BASE_ARGS),
    _example("size", "wide.png", "--mode", "image", "--width", "240", "--height", "96"),
    _example("center", "off-centre.png", *BASE_ARGS, "--x-center", "0.4", "--y-center", "-0.2"),
    _example("zoom", "close-up.png", *BASE_ARGS, "--zoom", "400"),
    _example("zoom-steps", "stepped.png", *BASE_ARGS, "--zoom-steps", "5"),
    _example("deep", "deep.png", *BASE_ARGS, "--deep", "--zoom-steps", "40"),
    _example("pan", "panned.png", *BASE_ARGS, "--pan", "120", "30"),
    _example("constant", "dendrite.png", *BASE_ARGS, "--cx", "0.0", "--cy", "1.0"),
    _example("max-iterations", "shallow.png", *BASE_ARGS, "--max-iterations", "50"),
    _example("threads", "single-thread.png", *BASE_ARGS, "--threads", "1"),
    _example("show-grid", "grid.png", *BASE_ARGS, "--show-grid"),
    _example("format", "julia.webp", *BASE_ARGS, "--format", "webp"),
    _example("walk", "walk.gif", "--mode", "gif", "--width", "160", "--height", "120", "--walk", "6"),
    _example("walk-step", "fast-walk.gif", "--mode", "gif", "--width", "160", "--height", "120", "--walk", "4", "--walk-step", "0.05"),
    _example("verbose", "diagnostic.png", *BASE_ARGS, "--verbose"),
]


def _ensure_clean(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.exists():
            shutil.rmtree(path)


def _prepare(example: Example) -> None:
    _ensure_clean([example.expected.parent])
    example.expected.parent.mkdir(parents=True, exist_ok=True)


def _verify(example: Example) -> None:
    if not example.expected.is_file():
        raise RuntimeError(f"Expected file {example.expected} was not created")


def main() -> None:
    EXAMPLES_ROOT.mkdir(parents=True, exist_ok=True)
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _prepare(example)
        subprocess.run(example.full_args(), check=True)
        _verify(example)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()
