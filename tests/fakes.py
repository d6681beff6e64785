"""In-memory stand-ins for Cosmos containers, the document store and the auth client."""

import copy
import itertools

from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError

from studio_calendar.database import DocumentStore, resolve_timestamps
from studio_calendar.errors import INVALID_CREDENTIAL, CommandError
from studio_calendar.models import AuthUser


class FakeContainer:
    """Just enough of a Cosmos ContainerProxy for the staff routes."""

    def __init__(self, items=None):
        self.items = {item["id"]: copy.deepcopy(item) for item in items or []}

    def read_item(self, item, partition_key):
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Entity with the specified id does not exist")
        return copy.deepcopy(self.items[item])

    def create_item(self, body):
        if body["id"] in self.items:
            raise CosmosResourceExistsError(status_code=409, message="Conflict")
        self.items[body["id"]] = copy.deepcopy(body)
        return copy.deepcopy(body)

    def upsert_item(self, body):
        self.items[body["id"]] = copy.deepcopy(body)
        return copy.deepcopy(body)

    def delete_item(self, item, partition_key):
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Not found")
        del self.items[item]

    def query_items(self, query, parameters=None, enable_cross_partition_query=False):
        params = {p["name"]: p["value"] for p in parameters or []}
        if "COUNT(1)" in query:
            return [sum(
                1 for doc in self.items.values()
                if doc.get("role") == params["@role"] and doc.get("active") is True
            )]
        if "@email" in query:
            return [copy.deepcopy(doc) for doc in self.items.values() if doc.get("email") == params["@email"]]
        return [copy.deepcopy(doc) for doc in self.items.values()]


class FakeWatch:
    def __init__(self, collection, doc_id, on_snapshot, on_error, order_by=()):
        self.collection = collection
        self.doc_id = doc_id
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.order_by = order_by
        self.cancelled = False

    def __call__(self):
        self.cancelled = True


class FakeDocumentStore(DocumentStore):
    """
    DocumentStore whose live watches deliver only when the test calls emit().
    `before_write` runs at the start of every write (to observe the state while
    the "remote call" is in flight); `fail_with` makes the next write raise.
    """

    def __init__(self, collections=None):
        self.collections = {"Events": {}, "Users": {}}
        for name, docs in (collections or {}).items():
            self.collections[name] = {doc["id"]: dict(doc) for doc in docs}
        self.watches = []
        self.fail_with = None
        self.before_write = None
        self.get_error = None
        self._ids = itertools.count(1)

    def _write(self, op, collection, doc_id=None, data=None):
        if self.before_write:
            self.before_write(op, collection, doc_id, data)
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    def get(self, collection, doc_id):
        if self.get_error is not None:
            raise self.get_error
        doc = self.collections.get(collection, {}).get(doc_id)
        return dict(doc) if doc else None

    def add(self, collection, data):
        self._write("add", collection, data=data)
        doc_id = f"doc-{next(self._ids)}"
        self.collections.setdefault(collection, {})[doc_id] = {**resolve_timestamps(data), "id": doc_id}
        return doc_id

    def update(self, collection, doc_id, data):
        self._write("update", collection, doc_id, data)
        self.collections[collection][doc_id].update(resolve_timestamps(data))

    def delete(self, collection, doc_id):
        self._write("delete", collection, doc_id)
        self.collections[collection].pop(doc_id, None)

    def watch_collection(self, collection, on_snapshot, on_error, order_by=()):
        watch = FakeWatch(collection, None, on_snapshot, on_error, order_by)
        self.watches.append(watch)
        return watch

    def watch_document(self, collection, doc_id, on_snapshot, on_error):
        watch = FakeWatch(collection, doc_id, on_snapshot, on_error)
        self.watches.append(watch)
        return watch

    def active_watches(self, collection=None):
        return [w for w in self.watches if not w.cancelled and (collection is None or w.collection == collection)]

    def emit(self, collection):
        docs = list(self.collections.get(collection, {}).values())
        for watch in self.active_watches(collection):
            if watch.doc_id is not None:
                doc = self.collections[collection].get(watch.doc_id)
                watch.on_snapshot(dict(doc) if doc else None)
            else:
                ordered = sorted(docs, key=lambda d: tuple(str(d.get(f) or "") for f in watch.order_by))
                watch.on_snapshot([dict(doc) for doc in ordered])

    def emit_error(self, collection, error):
        for watch in self.active_watches(collection):
            watch.on_error(error)


class FakeAuth:
    """Synchronous auth collaborator with a fixed credential table."""

    def __init__(self, accounts=None):
        self.accounts = accounts or {}
        self.current_user = None
        self.listeners = []
        self.sign_out_calls = 0

    def token(self):
        return f"token-{self.current_user.uid}" if self.current_user else None

    def on_auth_state_changed(self, listener):
        self.listeners.append(listener)
        listener(self.current_user)
        return lambda: self.listeners.remove(listener)

    def _notify(self):
        for listener in list(self.listeners):
            listener(self.current_user)

    def sign_in(self, email, password):
        account = self.accounts.get(email)
        if not account or account[1] != password:
            raise CommandError(INVALID_CREDENTIAL, "Invalid credentials")
        self.current_user = AuthUser(uid=account[0], email=email)
        self._notify()
        return self.current_user

    def sign_out(self):
        self.sign_out_calls += 1
        if self.current_user is None:
            return
        self.current_user = None
        self._notify()


class FakeResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body
