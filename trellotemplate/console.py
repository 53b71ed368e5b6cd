"""Interactive console: key reads, board choice, plan display, confirmation."""

from __future__ import annotations

import sys
from collections.abc import Callable, Collection, Sequence

from rich.console import Console
from rich.text import Text

from trellotemplate.template_filter import is_selected

console = Console()

KeyReader = Callable[[], str]


def read_key() -> str:
    """Read a single key press without waiting for Enter.

    Falls back to the first character of a line when stdin is not a
    terminal (piped input, CI).

    Raises:
        EOFError: If stdin is exhausted
    """
    if not sys.stdin.isatty():
        line = sys.stdin.readline()
        if not line:
            raise EOFError("no more input on stdin")
        return line[:1]

    try:
        import msvcrt
    except ImportError:
        import termios
        import tty

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setraw(fd)
            key = sys.stdin.read(1)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
    else:
        key = msvcrt.getwch()

    if key == "\x03":
        raise KeyboardInterrupt
    if not key:
        raise EOFError("no more input on stdin")
    return key


def choose_board(name: str, candidates: Sequence[dict], read: KeyReader = read_key) -> int:
    """Ask which of several same-named boards is meant.

    Prints every candidate with its index and reads keys until one names a
    listed index. Invalid keys are ignored without comment.

    Raises:
        EOFError: If input runs out before a valid index is read
    """
    console.print(f"### multiple boards called {name} ###", style="bold", markup=False)
    for i, board in enumerate(candidates):
        console.print(f"[{i}] - {board.get('name')}: {board.get('url')}", markup=False)

    console.print("Select number with correct link: ", end="")
    while True:
        key = read()
        if key.isascii() and key.isdigit() and int(key) < len(candidates):
            console.print(key)
            return int(key)


def show_plan(
    board: dict,
    template_lists: Sequence[dict],
    names: Collection[str],
    ignore_named: bool,
    destination_names: Sequence[str],
    copy_cards: bool = False,
) -> None:
    """Print what is about to be copied where.

    Lists that will be copied are green, the rest red.
    """
    console.rule()
    console.print(
        f"{board.get('name')} found with {len(template_lists)} lists:", markup=False
    )
    for lst in template_lists:
        selected = is_selected(lst["name"], names, ignore_named)
        console.print(Text(lst["name"], style="green" if selected else "red"))

    if copy_cards:
        console.print("Cards on copied lists will be copied too")

    console.print("Destination boards:")
    for name in destination_names:
        console.print(f" - {name}", markup=False)
    console.rule()


def confirm(read: KeyReader = read_key, accept: str = "y") -> bool:
    """Block for one key press; only the accept key (any case) confirms.

    Running out of input counts as declining.
    """
    console.print(f"Press {accept} to confirm and continue")
    try:
        key = read()
    except EOFError:
        key = ""
    console.print()
    return key.lower() == accept.lower()
