"""Interactive selection for repo-keeper using Textual."""

from typing import List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, SelectionList, Static

from .__version__ import __version__
from .logging_config import get_logger

logger = get_logger(__name__)


class SelectionApp(App[List[int]]):
    """Pick any subset of labelled choices.

    ``run()`` returns the zero-based indices of the selected choices, or an
    empty list when the user cancels.
    """

    TITLE = "Repo Keeper"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Screen {
        background: $surface;
    }

    SelectionList {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 1;
    }
    """

    BINDINGS = [
        Binding("c", "confirm", "Confirm"),
        Binding("a", "select_all", "Select All"),
        Binding("n", "select_none", "Select None"),
        Binding("q", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def __init__(self, title: str, labels: List[str], initially_selected: Optional[List[int]] = None):
        super().__init__()
        self.selection_title = title
        self.labels = labels
        self.initially_selected = set(initially_selected or [])

    def compose(self) -> ComposeResult:
        """Create child widgets."""
        yield Header(show_clock=False, icon="")
        yield SelectionList[int](
            *[
                (label, index, index in self.initially_selected)
                for index, label in enumerate(self.labels)
            ],
            id="choices",
        )
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = self.selection_title
        self.query_one(SelectionList).focus()
        self._update_status()

    def on_selection_list_selected_changed(self, event: SelectionList.SelectedChanged) -> None:
        self._update_status()

    def _update_status(self) -> None:
        selected = len(self.query_one(SelectionList).selected)
        self.query_one("#status-bar", Static).update(
            f"{selected} of {len(self.labels)} selected. Space toggles, c confirms."
        )

    def action_confirm(self) -> None:
        selected = sorted(self.query_one(SelectionList).selected)
        logger.debug(f"Selected {len(selected)} of {len(self.labels)}")
        self.exit(selected)

    def action_select_all(self) -> None:
        self.query_one(SelectionList).select_all()

    def action_select_none(self) -> None:
        self.query_one(SelectionList).deselect_all()

    def action_cancel(self) -> None:
        self.exit([])
