"""Progress and selection hooks used by the engines."""

import sys
from typing import Callable, List, Optional, Protocol, Sequence, TypeVar

from rich.console import Console
from rich.prompt import Prompt

from repo_keeper.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Interaction(Protocol):
    """How the engines report progress and ask which items to act on."""

    def notify(self, message: str) -> None:
        ...

    def select(self, title: str, choices: Sequence[T], describe: Callable[[T], str]) -> List[T]:
        ...


class AutomaticInteraction:
    """Selects every choice. Progress goes to the log."""

    def notify(self, message: str) -> None:
        logger.info(message)

    def select(self, title: str, choices: Sequence[T], describe: Callable[[T], str]) -> List[T]:
        logger.info(f"{title}: selecting all {len(choices)}")
        return list(choices)


class NullInteraction:
    """Selects nothing and stays silent."""

    def notify(self, message: str) -> None:
        pass

    def select(self, title: str, choices: Sequence[T], describe: Callable[[T], str]) -> List[T]:
        return []


def parse_selection(answer: str, count: int) -> List[int]:
    """Turn a prompt answer into zero-based indices.

    Accepts ``all``/``a``, space or comma separated numbers (1-based) and
    ranges such as ``2-4``. Blank means none.

    Raises:
        ValueError: a token is not a number or is out of range
    """
    text = answer.strip().lower()
    if not text:
        return []
    if text in ("a", "all"):
        return list(range(count))

    selected = set()
    for token in text.replace(",", " ").split():
        if "-" in token:
            start_text, _, end_text = token.partition("-")
            start, end = int(start_text), int(end_text)
        else:
            start = end = int(token)
        if start < 1 or end > count or start > end:
            raise ValueError(f"{token} is not between 1 and {count}")
        selected.update(range(start - 1, end))
    return sorted(selected)


class ConsoleInteraction:
    """Interaction on the terminal using rich, with a textual picker on a TTY."""

    def __init__(self, console: Optional[Console] = None, use_tui: Optional[bool] = None):
        self.console = console or Console()
        if use_tui is None:
            use_tui = sys.stdin.isatty() and sys.stdout.isatty()
        self.use_tui = use_tui

    def notify(self, message: str) -> None:
        self.console.print(message)

    def select(self, title: str, choices: Sequence[T], describe: Callable[[T], str]) -> List[T]:
        if not choices:
            return []
        labels = [describe(choice) for choice in choices]
        if self.use_tui:
            from repo_keeper.tui import SelectionApp

            indices = SelectionApp(title, labels).run() or []
        else:
            indices = self._prompt(title, labels)
        return [choices[i] for i in sorted(indices)]

    def _prompt(self, title: str, labels: List[str]) -> List[int]:
        self.console.print(f"\n[bold]{title}[/bold]")
        for number, label in enumerate(labels, 1):
            self.console.print(f"  [cyan]{number:>3}[/cyan]  {label}")

        while True:
            answer = Prompt.ask(
                "Select (numbers or ranges, 'all', blank for none)",
                console=self.console,
                default="",
                show_default=False,
            )
            try:
                return parse_selection(answer, len(labels))
            except ValueError as e:
                self.console.print(f"[red]Invalid selection: {e}[/red]")
