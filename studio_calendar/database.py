# studio_calendar/database.py

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from azure.cosmos import CosmosClient, PartitionKey
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from studio_calendar.config import (
    ACCOUNTS_CONTAINER,
    EVENTS_CONTAINER,
    USERS_CONTAINER,
    BackendConfig,
    load_config,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Placeholder resolved to the store's write time
SERVER_TIMESTAMP = object()

_database = None


def get_database(config: Optional[BackendConfig] = None):
    """Gets (and caches) the Cosmos DB database client."""
    global _database
    if _database is None:
        config = config or load_config()
        if not config.cosmos_connection_string:
            logger.error("Missing COSMOS_CONNECTION_STRING.")
            raise RuntimeError("COSMOS_CONNECTION_STRING is not configured")
        client = CosmosClient.from_connection_string(config.cosmos_connection_string)
        _database = client.get_database_client(config.database_name)
    return _database


def get_users_container():
    return get_database().get_container_client(USERS_CONTAINER)


def get_accounts_container():
    return get_database().get_container_client(ACCOUNTS_CONTAINER)


def ensure_containers(config: Optional[BackendConfig] = None):
    """Creates the database and its three containers if they don't exist."""
    config = config or load_config()
    client = CosmosClient.from_connection_string(config.cosmos_connection_string)
    database = client.create_database_if_not_exists(id=config.database_name)
    for name in (USERS_CONTAINER, EVENTS_CONTAINER, ACCOUNTS_CONTAINER):
        database.create_container_if_not_exists(id=name, partition_key=PartitionKey(path="/id"))
        logger.info("Container '%s' ready in database '%s'", name, config.database_name)
    return database


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def resolve_timestamps(data: dict) -> dict:
    now = utc_now()
    return {key: (now if value is SERVER_TIMESTAMP else value) for key, value in data.items()}


def strip_system_fields(doc: dict) -> dict:
    return {key: value for key, value in doc.items() if not key.startswith("_")}


class DocumentStore(ABC):
    """
    Document store collaborator: per-record CRUD plus live subscriptions.
    watch_* callbacks may fire on another thread; callers marshal them.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return the document, or None if it does not exist."""

    @abstractmethod
    def add(self, collection: str, data: dict) -> str:
        """Create a document and return its store-assigned id."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: dict) -> None:
        """Merge data into an existing document."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def watch_collection(
        self,
        collection: str,
        on_snapshot: Callable[[List[dict]], None],
        on_error: Callable[[Exception], None],
        order_by: Sequence[str] = (),
    ) -> Callable[[], None]:
        """Deliver the full collection on every change; returns an unsubscribe callable."""

    @abstractmethod
    def watch_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: Callable[[Optional[dict]], None],
        on_error: Callable[[Exception], None],
    ) -> Callable[[], None]:
        """Deliver the document (or None) on every change; returns an unsubscribe callable."""


class PollingWatch:
    """Polls `fetch` on a daemon thread and delivers a snapshot whenever it changes."""

    def __init__(self, name: str, fetch: Callable, on_snapshot: Callable, on_error: Callable, interval: float):
        self.name = name
        self._fetch = fetch
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"watch-{name}", daemon=True)

    def start(self) -> "PollingWatch":
        self._thread.start()
        return self

    def _run(self):
        last = None
        first = True
        while not self._stop.is_set():
            try:
                snapshot = self._fetch()
            except Exception as e:
                logger.warning("Watch '%s' failed: %s", self.name, str(e))
                self._on_error(e)
                # A failure breaks the "unchanged" chain so the next success is delivered
                first = True
            else:
                if first or snapshot != last:
                    first = False
                    last = snapshot
                    self._on_snapshot(snapshot)
            self._stop.wait(self._interval)

    def cancel(self):
        self._stop.set()

    def __call__(self):
        self.cancel()


class CosmosDocumentStore(DocumentStore):
    """DocumentStore over Cosmos DB containers partitioned by /id."""

    def __init__(self, database=None, poll_interval: float = 2.0):
        self._database = database
        self.poll_interval = poll_interval

    @classmethod
    def from_config(cls, config: BackendConfig) -> "CosmosDocumentStore":
        return cls(get_database(config), poll_interval=config.poll_interval)

    def _container(self, collection: str):
        database = self._database or get_database()
        return database.get_container_client(collection)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            doc = self._container(collection).read_item(item=doc_id, partition_key=doc_id)
        except CosmosResourceNotFoundError:
            return None
        return strip_system_fields(doc)

    def add(self, collection: str, data: dict) -> str:
        doc_id = str(uuid.uuid4())
        item = resolve_timestamps(data)
        item["id"] = doc_id
        self._container(collection).create_item(body=item)
        logger.info("Created document '%s' in '%s'", doc_id, collection)
        return doc_id

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        container = self._container(collection)
        doc = strip_system_fields(container.read_item(item=doc_id, partition_key=doc_id))
        doc.update(resolve_timestamps(data))
        doc["id"] = doc_id
        container.upsert_item(body=doc)
        logger.info("Updated document '%s' in '%s'", doc_id, collection)

    def delete(self, collection: str, doc_id: str) -> None:
        self._container(collection).delete_item(item=doc_id, partition_key=doc_id)
        logger.info("Deleted document '%s' from '%s'", doc_id, collection)

    def list(self, collection: str, order_by: Sequence[str] = ()) -> List[dict]:
        docs = [
            strip_system_fields(doc)
            for doc in self._container(collection).query_items(
                query="SELECT * FROM c",
                enable_cross_partition_query=True,
            )
        ]
        if order_by:
            docs.sort(key=lambda doc: tuple(str(doc.get(field) or "") for field in order_by))
        return docs

    def watch_collection(self, collection, on_snapshot, on_error, order_by=()):
        return PollingWatch(
            collection,
            lambda: self.list(collection, order_by),
            on_snapshot,
            on_error,
            self.poll_interval,
        ).start()

    def watch_document(self, collection, doc_id, on_snapshot, on_error):
        return PollingWatch(
            f"{collection}/{doc_id}",
            lambda: self.get(collection, doc_id),
            on_snapshot,
            on_error,
            self.poll_interval,
        ).start()
