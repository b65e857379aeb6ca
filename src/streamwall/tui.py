from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Tuple

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Input, Static, TextArea

from streamwall.api.client import TwitchGqlClient
from streamwall.config import Settings
from streamwall.context import AppContext, build_context
from streamwall.director import Director
from streamwall.events import BusyChanged, LayoutApplied, OnlineChanged, RosterChanged, SidebarToggled
from streamwall.layout import GridLayout, Placement, flow_order
from streamwall.player import PlayerFactory, create_player_factory
from streamwall.reconcile import ROLE_FOCUS, Reconciler
from streamwall.snapshot import DebouncedSaver, Snapshot, load_snapshot
from streamwall.usecases.live_status import LiveStatusPoller

logger = logging.getLogger(__name__)


class Tile(Static):
    """Grid cell standing in for one channel's player window."""

    def __init__(self, channel: str) -> None:
        super().__init__(classes="tile -tile")
        self.channel = channel
        self.online = False
        self.placeholder = False

    def refresh_label(self) -> None:
        text = Text(self.channel, style="bold")
        if self.has_class("-focus"):
            text.append("  ◉ focus", style="#28b35a")
        if self.placeholder:
            text.append("\nplayer unavailable", style="#a05050")
        elif not self.online:
            text.append("\nOFFLINE", style="#7a7a7a")
        self.update(text)

    def on_click(self) -> None:
        app = self.app
        if isinstance(app, StreamwallApp):
            app.director.set_focus(self.channel)


class Spacer(Static):
    pass


class TileGrid(Container):
    """Grid whose track sizes and child order follow a GridLayout.

    Textual grids auto-place children row by row, so explicit placements
    are realised by ordering children and filling holes with spacers.
    """

    def __init__(self, *, on_empty: Callable[[bool], None], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.branding = Static("streamwall", id="branding")
        self._on_empty = on_empty

    def compose(self) -> ComposeResult:
        yield self.branding

    def create_container(self, name: str) -> Tile:
        tile = Tile(name)
        self.mount(tile)
        return tile

    def remove_container(self, container: Any) -> None:
        container.remove()

    def set_role(self, container: Any, role: str) -> None:
        focus = role == ROLE_FOCUS
        container.set_class(focus, "-focus")
        container.set_class(not focus, "-tile")
        container.refresh_label()

    def apply_layout(self, layout: GridLayout, placed: List[Tuple[str, Any, Placement]]) -> None:
        styles = self.styles
        styles.grid_size_columns = layout.column_count
        styles.grid_size_rows = layout.row_count
        styles.grid_columns = " ".join(track.css() for track in layout.columns)
        styles.grid_rows = " ".join(track.css() for track in layout.rows)

        for spacer in list(self.query(Spacer)):
            spacer.remove()

        items = [(container, placement) for _, container, placement in placed]
        items.append((self.branding, layout.branding))
        for widget, placement in flow_order(layout, items):
            if widget is None:
                widget = Spacer()
                self.mount(widget)
            elif self.children and self.children[-1] is not widget:
                self.move_child(widget, after=self.children[-1])
            widget.styles.row_span = placement.row_span
            widget.styles.column_span = placement.column_span

    def set_empty(self, empty: bool) -> None:
        self._on_empty(empty)


class ImportScreen(ModalScreen[Optional[str]]):
    BINDINGS = [("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    ImportScreen {
        align: center middle;
    }
    ImportScreen #import_box {
        width: 60;
        height: 20;
        background: #0f1211;
        border: solid #16783a;
        padding: 1 2;
    }
    ImportScreen TextArea {
        height: 1fr;
    }
    ImportScreen #import_actions {
        height: auto;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="import_box"):
            yield Static("Paste channel names (one per line or comma separated)")
            yield TextArea(id="import_text")
            with Horizontal(id="import_actions"):
                yield Button("Import", id="import_confirm", variant="primary")
                yield Button("Cancel", id="import_cancel")

    def on_mount(self) -> None:
        self.query_one("#import_text", TextArea).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "import_confirm":
            self.dismiss(self.query_one("#import_text", TextArea).text)
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class StreamwallApp(App[None]):
    BINDINGS = [
        ("left", "cycle_focus(-1)", "Prev"),
        ("right", "cycle_focus(1)", "Next"),
        ("f", "recall_focus", "Recall"),
        ("s", "toggle_sidebar", "Sidebar"),
        ("c", "open_chat", "Chat"),
        ("a", "start_all", "Start all"),
        ("i", "import", "Import"),
        ("space", "toggle_live", "Live"),
        ("delete", "remove_channel", "Remove"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0b0d0c;
        color: #d6d6d6;
        layout: horizontal;
    }

    #sidebar {
        width: 32;
        background: #0f1211;
        border-right: solid #2a2f2e;
    }

    .-sidebar-collapsed #sidebar {
        display: none;
    }

    #channels {
        height: 1fr;
    }

    #sidebar_actions {
        height: auto;
    }

    Input {
        background: #0f1211;
        border: solid #2a2f2e;
    }

    Input.input-error {
        border: solid #b33a3a;
    }

    #content {
        width: 1fr;
        height: 1fr;
    }

    #grid {
        layout: grid;
        height: 1fr;
    }

    #empty {
        height: 1fr;
        content-align: center middle;
        color: #7a7a7a;
    }

    #empty.hidden {
        display: none;
    }

    .tile {
        height: 1fr;
        width: 1fr;
        border: solid #2a2f2e;
        padding: 0 1;
    }

    .tile.-focus {
        border: heavy #16783a;
    }

    #branding {
        height: 1fr;
        content-align: center middle;
        color: #16783a;
        text-style: bold;
    }
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        snapshot: Optional[Snapshot] = None,
        player_factory: Optional[PlayerFactory] = None,
        client: Optional[TwitchGqlClient] = None,
        persist: bool = True,
    ) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.ctx: AppContext = build_context(self.settings)
        self._initial_snapshot = snapshot if snapshot is not None else (load_snapshot() if persist else None)
        self._player_factory = player_factory
        self._client = client
        self._persist = persist
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.director: Director

    def compose(self) -> ComposeResult:
        with Vertical(id="sidebar"):
            yield Input(placeholder="Add channel", id="add_channel")
            yield DataTable(id="channels")
            with Horizontal(id="sidebar_actions"):
                yield Button("Start all", id="start_all", variant="primary")
                yield Button("Import", id="import")
        with Vertical(id="content"):
            yield Static("No live channels. Toggle one in the sidebar.", id="empty")
            yield TileGrid(id="grid", on_empty=self._set_empty)
        yield Footer()

    def _dispatch(self, callback: Callable[..., Any], *args: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(callback, *args)

    def on_mount(self) -> None:
        self._loop = asyncio.get_running_loop()
        ctx = self.ctx
        factory = self._player_factory or create_player_factory(
            self.settings.player_preference, dispatch=self._dispatch
        )
        reconciler = Reconciler(
            roster=ctx.roster,
            pool=ctx.pool,
            online=ctx.online,
            bus=ctx.bus,
            surface=self.query_one("#grid", TileGrid),
            player_factory=factory,
            side_width=self.settings.side_column_width,
            branding_height=self.settings.branding_row_height,
        )

        poller: Optional[LiveStatusPoller] = None
        if self.settings.live_check_enabled:
            client = self._client or TwitchGqlClient(
                url=self.settings.gql_url, client_id=self.settings.gql_client_id
            )
            poller = LiveStatusPoller(
                roster=ctx.roster,
                online=ctx.online,
                client=client,
                batch_size=self.settings.live_check_batch_size,
                interval=self.settings.live_check_interval_s,
            )

        self.director = Director(
            ctx,
            reconciler,
            saver=None,
            poller=poller,
            spawn=lambda coro: self.run_worker(coro, group="live", exclusive=False),
        )
        if self._persist:
            self.director.saver = DebouncedSaver(self.director.snapshot, delay=self.settings.save_debounce_s)

        ctx.bus.subscribe(OnlineChanged, lambda _e: self._on_state_changed())
        ctx.bus.subscribe(RosterChanged, lambda _e: self._on_state_changed())
        ctx.bus.subscribe(LayoutApplied, lambda _e: self._on_state_changed())
        ctx.bus.subscribe(SidebarToggled, lambda e: self.set_class(e.collapsed, "-sidebar-collapsed"))
        ctx.bus.subscribe(BusyChanged, self._on_busy_changed)

        table = self.query_one("#channels", DataTable)
        table.cursor_type = "row"
        table.add_columns("", "Channel", "")

        self.director.restore(self._initial_snapshot)
        self._on_state_changed()

        if poller is not None:
            poller.start()

    def on_unmount(self) -> None:
        director = getattr(self, "director", None)
        if director is not None:
            director.shutdown()

    # ── rendering ──────────────────────────────────────────────────────────
    def _on_busy_changed(self, event: BusyChanged) -> None:
        self.query_one("#start_all", Button).disabled = event.busy

    def _set_empty(self, empty: bool) -> None:
        self.query_one("#empty", Static).set_class(not empty, "hidden")

    def _on_state_changed(self) -> None:
        self._render_channels()
        self._refresh_tiles()

    def _refresh_tiles(self) -> None:
        ctx = self.ctx
        for entry in self.director.reconciler.entries.values():
            tile = entry.container
            if isinstance(tile, Tile):
                tile.online = entry.name in ctx.online
                tile.placeholder = entry.player is None
                tile.refresh_label()

    def _render_channels(self) -> None:
        table = self.query_one("#channels", DataTable)
        selected = self._selected_channel()
        table.clear()
        ctx = self.ctx
        for name in self.director.sidebar_order():
            live = ctx.pool.is_live(name)
            style = "bold #28b35a" if name == ctx.focus.current else ""
            table.add_row(
                "●" if live else "○",
                Text(name, style=style),
                Text("LIVE", style="bold #e04040") if name in ctx.online else "",
                key=name,
            )
        if selected is not None and selected in ctx.roster:
            try:
                table.move_cursor(row=table.get_row_index(selected))
            except Exception:
                pass

    def _selected_channel(self) -> Optional[str]:
        table = self.query_one("#channels", DataTable)
        if table.row_count == 0:
            return None
        try:
            row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        except Exception:
            return None
        return row_key.value if row_key is not None else None

    # ── input ──────────────────────────────────────────────────────────────
    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "add_channel":
            return
        if self.director.add_channel(event.value):
            event.input.value = ""
            return
        event.input.add_class("input-error")
        self.set_timer(0.4, lambda: event.input.remove_class("input-error"))

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.row_key is not None and event.row_key.value:
            self.director.set_focus(event.row_key.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "start_all":
            self.action_start_all()
        elif event.button.id == "import":
            self.action_import()

    # ── actions ────────────────────────────────────────────────────────────
    def action_cycle_focus(self, direction: int) -> None:
        self.director.cycle_focus(direction)

    def action_recall_focus(self) -> None:
        self.director.recall_focus()

    def action_toggle_sidebar(self) -> None:
        self.director.toggle_sidebar()

    def action_open_chat(self) -> None:
        if not self.director.open_chat():
            self.notify("Focus a channel to open its chat")

    def action_start_all(self) -> None:
        if self.director.sequencer.busy:
            return
        self.run_worker(self.director.start_all(), group="start_all", exclusive=True)

    def action_toggle_live(self) -> None:
        name = self._selected_channel()
        if name:
            self.director.toggle_live(name)

    def action_remove_channel(self) -> None:
        name = self._selected_channel()
        if name:
            self.director.remove_channel(name)

    def action_import(self) -> None:
        def done(text: Optional[str]) -> None:
            if text:
                added = self.director.import_channels(text)
                self.notify(f"Imported {added} channel(s)")

        self.push_screen(ImportScreen(), done)
