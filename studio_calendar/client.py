# studio_calendar/client.py

import logging
from datetime import date
from typing import Callable, List, Optional, Tuple

from studio_calendar.auth_client import AuthClient
from studio_calendar.commands import StaffCommands
from studio_calendar.config import BackendConfig, load_config
from studio_calendar.database import CosmosDocumentStore, DocumentStore
from studio_calendar.printing import PrintSurface, TextPrintSurface, print_view
from studio_calendar.render import (
    StaffRow,
    filter_choices,
    render_view,
    staff_options,
    staff_table,
)
from studio_calendar.session import SessionController, StaffAdmin
from studio_calendar.store import ClientState
from studio_calendar.sync import SyncLayer

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class CalendarClient:
    """
    Wires the state store, sync layer, session controller and staff admin
    together. `render` is called after every state change and `alert` for
    blocking user-facing errors.
    """

    def __init__(
        self,
        auth: AuthClient,
        store: DocumentStore,
        commands: StaffCommands,
        render: Optional[Callable[[], None]] = None,
        alert: Optional[Callable[[str], None]] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.clock = clock
        self.state = ClientState(today=clock())
        self.on_render = render or (lambda: None)
        self.sync = SyncLayer(self.state, store, render=self.on_render, alert=alert)
        self.session = SessionController(auth, store, self.state, self.sync, render=self.on_render, clock=clock)
        self.staff = StaffAdmin(self.session, commands)

    @classmethod
    def from_config(cls, config: Optional[BackendConfig] = None, **kwargs) -> "CalendarClient":
        config = config or load_config()
        auth = AuthClient(config.functions_base_url)
        return cls(
            auth,
            CosmosDocumentStore.from_config(config),
            StaffCommands(config.functions_base_url, auth.token),
            **kwargs,
        )

    def start(self):
        self.session.start()

    def stop(self):
        self.session.stop()

    def pump(self) -> int:
        """Applies queued live-feed deliveries; call from the UI loop."""
        return self.sync.process_pending()

    # Session
    def sign_in(self, email: str, password: str):
        return self.session.sign_in(email, password)

    def sign_out(self):
        self.session.sign_out()

    # Navigation
    def set_view(self, view: str):
        self.state.set_view(view)
        self.on_render()

    def change_period(self, direction: str):
        self.state.change_period(direction)
        self.on_render()

    def go_today(self):
        self.state.go_today(self.clock())
        self.on_render()

    def select_staff(self, name: str):
        self.state.select_staff(name)
        self.on_render()

    # Events
    def save_event(self, payload) -> str:
        return self.sync.save_event(payload)

    def delete_event(self, event_id: str):
        self.sync.delete_event(event_id)

    # Derived views
    def view(self):
        return render_view(self.state, self.clock())

    def staff_filter_choices(self) -> List[Tuple[str, str]]:
        return filter_choices(staff_options(self.state.users, self.state.events))

    def assignee_suggestions(self) -> List[str]:
        return staff_options(self.state.users, self.state.events)

    def staff_rows(self) -> List[StaffRow]:
        if not self.session.is_admin:
            return []
        return staff_table(self.state.users, self.state.current_user.uid)

    def print(self, surface: Optional[PrintSurface] = None):
        return print_view(self.state, surface or TextPrintSurface())
