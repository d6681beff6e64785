# studio_calendar/sync.py

import logging
import queue
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from studio_calendar.config import EVENTS_CONTAINER, USERS_CONTAINER
from studio_calendar.database import SERVER_TIMESTAMP, DocumentStore
from studio_calendar.errors import (
    MSG_LOGIN_REQUIRED,
    UNAUTHENTICATED,
    CommandError,
    normalize_error,
)
from studio_calendar.models import Event, EventDraft, StaffUser
from studio_calendar.store import ClientState
from studio_calendar.timeutils import parse_date

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

EVENTS_FEED = "events"
USERS_FEED = "users"

MSG_SYNC_FAILED = "일정을 실시간으로 불러오지 못했습니다."

TEMP_ID_PREFIX = "local-"


@dataclass
class FeedMessage:
    feed: str
    generation: int
    docs: Optional[List[dict]] = None
    error: Optional[Exception] = None


def is_temp_id(event_id: str) -> bool:
    return event_id.startswith(TEMP_ID_PREFIX)


def _log_alert(message: str):
    logger.error("User alert: %s", message)


@dataclass
class _Feed:
    generation: int = 0
    error_reported: bool = False


class SyncLayer:
    """
    Keeps ClientState in step with the document store.

    Watch callbacks only post FeedMessages to `channel`; process_pending()
    applies them in delivery order on the calling thread, each delivery
    replacing its whole slice. Event writes are optimistic: the local state
    changes first and is restored from a snapshot if the write fails.
    """

    def __init__(
        self,
        state: ClientState,
        store: DocumentStore,
        render: Optional[Callable[[], None]] = None,
        alert: Optional[Callable[[str], None]] = None,
        channel: Optional["queue.Queue[FeedMessage]"] = None,
    ):
        self.state = state
        self.store = store
        self.render = render or (lambda: None)
        self.alert = alert or _log_alert
        self.channel = channel if channel is not None else queue.Queue()
        self._feeds: Dict[str, _Feed] = {EVENTS_FEED: _Feed(), USERS_FEED: _Feed()}

    # -----------------------
    # Live subscriptions
    # -----------------------
    def _open_feed(self, feed: str) -> int:
        tracker = self._feeds[feed]
        tracker.generation += 1
        tracker.error_reported = False
        return tracker.generation

    def _snapshot_sink(self, feed: str, generation: int):
        def deliver(docs: Union[List[dict], dict, None]):
            if not isinstance(docs, list):
                docs = [docs] if docs else []
            self.channel.put(FeedMessage(feed, generation, docs=docs))
        return deliver

    def _error_sink(self, feed: str, generation: int):
        def deliver(error: Exception):
            self.channel.put(FeedMessage(feed, generation, error=error))
        return deliver

    def subscribe_events(self):
        if self.state.unsub_events:
            self.state.unsub_events()
        generation = self._open_feed(EVENTS_FEED)
        self.state.unsub_events = self.store.watch_collection(
            EVENTS_CONTAINER,
            self._snapshot_sink(EVENTS_FEED, generation),
            self._error_sink(EVENTS_FEED, generation),
            order_by=("date", "time"),
        )

    def subscribe_users(self):
        """Admins watch every profile; everyone else only their own document."""
        if self.state.unsub_users:
            self.state.unsub_users()
        user = self.state.current_user
        if user is None:
            return
        generation = self._open_feed(USERS_FEED)
        on_snapshot = self._snapshot_sink(USERS_FEED, generation)
        on_error = self._error_sink(USERS_FEED, generation)
        if user.is_admin:
            self.state.unsub_users = self.store.watch_collection(USERS_CONTAINER, on_snapshot, on_error)
        else:
            self.state.unsub_users = self.store.watch_document(USERS_CONTAINER, user.uid, on_snapshot, on_error)

    def unsubscribe_all(self):
        if self.state.unsub_events:
            self.state.unsub_events()
        if self.state.unsub_users:
            self.state.unsub_users()
        self.state.unsub_events = None
        self.state.unsub_users = None
        # Anything still queued belongs to the closed feeds
        for tracker in self._feeds.values():
            tracker.generation += 1

    def process_pending(self) -> int:
        """Applies every queued delivery in order. Returns how many were applied."""
        applied = 0
        while True:
            try:
                message = self.channel.get_nowait()
            except queue.Empty:
                return applied
            if self._apply(message):
                applied += 1

    def _apply(self, message: FeedMessage) -> bool:
        tracker = self._feeds[message.feed]
        if message.generation != tracker.generation:
            return False

        if message.error is not None:
            logger.warning("Live %s feed error: %s", message.feed, str(message.error))
            if not tracker.error_reported:
                tracker.error_reported = True
                self.alert(f"{MSG_SYNC_FAILED} ({normalize_error(message.error)})")
            return True

        tracker.error_reported = False
        if message.feed == EVENTS_FEED:
            self.state.events = [Event.from_document(doc) for doc in message.docs]
        else:
            self.state.users = [StaffUser.from_document(doc) for doc in message.docs]
        self.render()
        return True

    # -----------------------
    # Optimistic writes
    # -----------------------
    def _actor(self):
        actor = self.state.current_user
        if actor is None:
            raise CommandError(UNAUTHENTICATED, MSG_LOGIN_REQUIRED)
        return actor

    def _rollback(self, snapshot, error: Exception):
        logger.warning("Rolling back optimistic event change: %s", str(error))
        self.state.restore_events(snapshot)
        self.render()
        self.alert(normalize_error(error))

    def save_event(self, payload: Union[EventDraft, dict]) -> str:
        """
        Creates (no id) or updates (id set) an event. Validation happens before
        anything is touched; returns the event's permanent id.
        """
        draft = payload if isinstance(payload, EventDraft) else EventDraft.parse(payload)
        actor = self._actor()
        fields = draft.fields()
        audit = {"updatedAt": SERVER_TIMESTAMP, "updatedByUid": actor.uid, "updatedByName": actor.name}

        snapshot = self.state.snapshot_events()
        temp_id = None
        if draft.id:
            local = Event(id=draft.id, **fields, updatedByUid=actor.uid, updatedByName=actor.name)
            existing = self.state.find_event(draft.id)
            if existing is not None:
                local = existing.model_copy(update={**fields, "updatedByUid": actor.uid, "updatedByName": actor.name})
            self.state.events = [local if event.id == draft.id else event for event in self.state.events]
            if existing is None:
                self.state.events.append(local)
        else:
            temp_id = f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"
            self.state.events.append(Event(
                id=temp_id,
                **fields,
                createdByUid=actor.uid,
                createdByName=actor.name,
                updatedByUid=actor.uid,
                updatedByName=actor.name,
            ))
        self.render()

        try:
            if draft.id:
                self.store.update(EVENTS_CONTAINER, draft.id, {**fields, **audit})
                event_id = draft.id
            else:
                event_id = self.store.add(EVENTS_CONTAINER, {
                    **fields,
                    "createdAt": SERVER_TIMESTAMP,
                    "createdByUid": actor.uid,
                    "createdByName": actor.name,
                    **audit,
                })
        except Exception as e:
            self._rollback(snapshot, e)
            raise

        if temp_id and event_id != temp_id:
            self.state.events = [
                event.model_copy(update={"id": event_id}) if event.id == temp_id else event
                for event in self.state.events
            ]
        logger.info("Event '%s' saved by '%s'", event_id, actor.uid)
        self.state.focus_date = parse_date(draft.date)
        self.render()
        return event_id

    def delete_event(self, event_id: str):
        self._actor()
        if not event_id:
            return
        snapshot = self.state.snapshot_events()
        self.state.events = [event for event in self.state.events if event.id != event_id]
        self.render()
        try:
            self.store.delete(EVENTS_CONTAINER, event_id)
        except Exception as e:
            self._rollback(snapshot, e)
            raise
        logger.info("Event '%s' deleted", event_id)
