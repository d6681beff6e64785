# studio_calendar/store.py

import logging
from datetime import date
from typing import Callable, List, Optional, Tuple

from studio_calendar.models import ALL_STAFF, CurrentUser, Event, StaffUser, ViewMode
from studio_calendar.timeutils import shift_focus

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ClientState:
    """
    In-memory record that the renderer draws from. One per client; it is
    cleared on logout and repopulated on login, never persisted.
    """

    def __init__(self, today: Optional[date] = None):
        self.current_user: Optional[CurrentUser] = None
        self.current_view: str = ViewMode.month.value
        self.focus_date: date = today or date.today()
        self.selected_staff: str = ALL_STAFF
        self.events: List[Event] = []
        self.users: List[StaffUser] = []
        self.unsub_events: Optional[Callable[[], None]] = None
        self.unsub_users: Optional[Callable[[], None]] = None

    @property
    def is_admin(self) -> bool:
        return bool(self.current_user and self.current_user.is_admin)

    def reset(self):
        self.current_user = None
        self.events = []
        self.users = []

    def reset_view(self, today: Optional[date] = None):
        self.current_view = ViewMode.month.value
        self.focus_date = today or date.today()
        self.selected_staff = ALL_STAFF

    def set_view(self, view: str):
        self.current_view = ViewMode(view).value

    def change_period(self, direction: str):
        self.focus_date = shift_focus(self.focus_date, self.current_view, direction)

    def go_today(self, today: Optional[date] = None):
        self.focus_date = today or date.today()

    def select_staff(self, name: str):
        self.selected_staff = name or ALL_STAFF

    def ensure_valid_filter(self, options: List[str]):
        if self.selected_staff != ALL_STAFF and self.selected_staff not in options:
            logger.info("Staff filter '%s' no longer available; showing all", self.selected_staff)
            self.selected_staff = ALL_STAFF

    def find_event(self, event_id: str) -> Optional[Event]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def find_user(self, uid: str) -> Optional[StaffUser]:
        for user in self.users:
            if user.id == uid:
                return user
        return None

    def snapshot_events(self) -> Tuple[Event, ...]:
        return tuple(event.model_copy() for event in self.events)

    def restore_events(self, snapshot: Tuple[Event, ...]):
        self.events = [event.model_copy() for event in snapshot]
