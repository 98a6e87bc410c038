"""
Document store abstraction for Firestore, SQL and an in-memory test implementation.

Each user is one document holding the whole link list, so every link
mutation is a read-modify-write of that document. Only single calls are
atomic; nothing here guards a read followed by a write.
"""

from __future__ import annotations

import copy
import logging
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Protocol, Sequence

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1 import ArrayUnion
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import JSON, Column, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fanslink.constants import (
    CUSTOMERS_COLLECTION,
    SUBSCRIPTIONS_COLLECTION,
    TEMPLATES_COLLECTION,
    USERS_COLLECTION,
)
from fanslink.errors import BackendError, DocumentNotFoundError

logger = logging.getLogger(__name__)


class DbClient(Protocol):
    """Interface for document store access."""

    def get_user(self, uid: str) -> Optional[dict]:
        ...

    def set_user(self, uid: str, data: dict, *, merge: bool = True) -> None:
        ...

    def update_user(self, uid: str, fields: dict) -> None:
        """Overwrite top-level fields; raises DocumentNotFoundError if absent."""
        ...

    def append_links(self, uid: str, links: list[dict]) -> None:
        """Array-union `links` into the user's link list."""
        ...

    def find_users_by_username(
        self, username: str, limit: int = 1
    ) -> list[tuple[str, dict]]:
        ...

    def iter_users(self) -> Iterator[tuple[str, dict]]:
        ...

    def list_subscriptions(
        self, uid: str, statuses: Optional[Sequence[str]] = None
    ) -> list[dict]:
        ...

    def list_templates(self) -> list[dict]:
        ...


def _union(existing: list, additions: list) -> list:
    merged = list(existing)
    for item in additions:
        if item not in merged:
            merged.append(item)
    return merged


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.subscriptions: Dict[str, list[dict]] = {}
        self.templates: Dict[str, dict] = {}

    def get_user(self, uid: str) -> Optional[dict]:
        data = self.users.get(uid)
        return copy.deepcopy(data) if data is not None else None

    def set_user(self, uid: str, data: dict, *, merge: bool = True) -> None:
        current = self.users.get(uid, {}) if merge else {}
        self.users[uid] = {**current, **copy.deepcopy(data)}

    def update_user(self, uid: str, fields: dict) -> None:
        if uid not in self.users:
            raise DocumentNotFoundError(f"{USERS_COLLECTION}/{uid}")
        self.users[uid].update(copy.deepcopy(fields))

    def append_links(self, uid: str, links: list[dict]) -> None:
        if uid not in self.users:
            raise DocumentNotFoundError(f"{USERS_COLLECTION}/{uid}")
        user = self.users[uid]
        user["links"] = _union(user.get("links") or [], copy.deepcopy(links))

    def find_users_by_username(
        self, username: str, limit: int = 1
    ) -> list[tuple[str, dict]]:
        matches = [
            (uid, copy.deepcopy(data))
            for uid, data in self.users.items()
            if data.get("username") == username
        ]
        return matches[:limit]

    def iter_users(self) -> Iterator[tuple[str, dict]]:
        for uid, data in list(self.users.items()):
            yield uid, copy.deepcopy(data)

    def add_subscription(self, uid: str, subscription: dict) -> None:
        self.subscriptions.setdefault(uid, []).append(copy.deepcopy(subscription))

    def list_subscriptions(
        self, uid: str, statuses: Optional[Sequence[str]] = None
    ) -> list[dict]:
        records = self.subscriptions.get(uid, [])
        if statuses is not None:
            records = [r for r in records if r.get("status") in statuses]
        return copy.deepcopy(records)

    def save_template(self, template_id: str, data: dict) -> None:
        self.templates[template_id] = copy.deepcopy(data)

    def list_templates(self) -> list[dict]:
        return [
            {"id": template_id, **copy.deepcopy(data)}
            for template_id, data in self.templates.items()
        ]


class FirestoreDbClient:
    """
    Cloud Firestore implementation. Expects `firebase_admin.initialize_app`
    to have run unless a client is passed in.
    """

    def __init__(self, client=None):
        self.client = client or firestore.client()

    @contextmanager
    def _remote(self, action: str):
        try:
            yield
        except google_exceptions.NotFound as e:
            raise DocumentNotFoundError(action) from e
        except google_exceptions.GoogleAPICallError as e:
            logger.error("Firestore %s failed: %s", action, e)
            raise BackendError(f"Firestore {action} failed") from e

    def _user_ref(self, uid: str):
        return self.client.collection(USERS_COLLECTION).document(uid)

    def get_user(self, uid: str) -> Optional[dict]:
        with self._remote(f"get {USERS_COLLECTION}/{uid}"):
            snapshot = self._user_ref(uid).get()
        return snapshot.to_dict() if snapshot.exists else None

    def set_user(self, uid: str, data: dict, *, merge: bool = True) -> None:
        with self._remote(f"set {USERS_COLLECTION}/{uid}"):
            self._user_ref(uid).set(data, merge=merge)

    def update_user(self, uid: str, fields: dict) -> None:
        with self._remote(f"{USERS_COLLECTION}/{uid}"):
            self._user_ref(uid).update(fields)

    def append_links(self, uid: str, links: list[dict]) -> None:
        with self._remote(f"{USERS_COLLECTION}/{uid}"):
            self._user_ref(uid).update({"links": ArrayUnion(links)})

    def find_users_by_username(
        self, username: str, limit: int = 1
    ) -> list[tuple[str, dict]]:
        query = (
            self.client.collection(USERS_COLLECTION)
            .where(filter=FieldFilter("username", "==", username))
            .limit(limit)
        )
        with self._remote(f"query {USERS_COLLECTION} by username"):
            return [(snap.id, snap.to_dict()) for snap in query.stream()]

    def iter_users(self) -> Iterator[tuple[str, dict]]:
        with self._remote(f"stream {USERS_COLLECTION}"):
            for snap in self.client.collection(USERS_COLLECTION).stream():
                yield snap.id, snap.to_dict()

    def list_subscriptions(
        self, uid: str, statuses: Optional[Sequence[str]] = None
    ) -> list[dict]:
        query = (
            self.client.collection(CUSTOMERS_COLLECTION)
            .document(uid)
            .collection(SUBSCRIPTIONS_COLLECTION)
        )
        if statuses is not None:
            query = query.where(filter=FieldFilter("status", "in", list(statuses)))
        with self._remote(f"query {CUSTOMERS_COLLECTION}/{uid}/subscriptions"):
            return [snap.to_dict() for snap in query.stream()]

    def list_templates(self) -> list[dict]:
        with self._remote(f"list {TEMPLATES_COLLECTION}"):
            return [
                {"id": snap.id, **snap.to_dict()}
                for snap in self.client.collection(TEMPLATES_COLLECTION).stream()
            ]


class SqlDbClient:
    """
    SQLAlchemy-backed document store keeping each document as a JSON column.
    Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self, action: str):
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("SQL %s failed: %s", action, e)
            raise BackendError(f"SQL {action} failed") from e

    def get_user(self, uid: str) -> Optional[dict]:
        with self._session(f"get user {uid}") as session:
            row = session.get(UserRow, uid)
            return copy.deepcopy(row.data) if row else None

    def set_user(self, uid: str, data: dict, *, merge: bool = True) -> None:
        with self._session(f"set user {uid}") as session:
            row = session.get(UserRow, uid)
            if row:
                base = row.data if merge else {}
                row.data = {**base, **data}
                row.username = row.data.get("username")
            else:
                session.add(UserRow(uid=uid, username=data.get("username"), data=data))
            session.commit()

    def update_user(self, uid: str, fields: dict) -> None:
        with self._session(f"update user {uid}") as session:
            row = session.get(UserRow, uid)
            if not row:
                raise DocumentNotFoundError(f"{USERS_COLLECTION}/{uid}")
            row.data = {**row.data, **fields}
            row.username = row.data.get("username")
            session.commit()

    def append_links(self, uid: str, links: list[dict]) -> None:
        with self._session(f"append links for {uid}") as session:
            row = session.execute(
                select(UserRow).where(UserRow.uid == uid).with_for_update()
            ).scalar_one_or_none()
            if not row:
                raise DocumentNotFoundError(f"{USERS_COLLECTION}/{uid}")
            row.data = {**row.data, "links": _union(row.data.get("links") or [], links)}
            session.commit()

    def find_users_by_username(
        self, username: str, limit: int = 1
    ) -> list[tuple[str, dict]]:
        with self._session("query users by username") as session:
            rows = session.execute(
                select(UserRow).where(UserRow.username == username).limit(limit)
            ).scalars()
            return [(row.uid, copy.deepcopy(row.data)) for row in rows]

    def iter_users(self) -> Iterator[tuple[str, dict]]:
        with self._session("stream users") as session:
            rows = session.execute(select(UserRow).order_by(UserRow.uid)).scalars().all()
        for row in rows:
            yield row.uid, copy.deepcopy(row.data)

    def add_subscription(self, uid: str, subscription: dict) -> None:
        with self._session(f"add subscription for {uid}") as session:
            session.add(
                SubscriptionRow(
                    id=uuid.uuid4().hex,
                    uid=uid,
                    status=subscription.get("status"),
                    data=subscription,
                )
            )
            session.commit()

    def list_subscriptions(
        self, uid: str, statuses: Optional[Sequence[str]] = None
    ) -> list[dict]:
        with self._session(f"list subscriptions for {uid}") as session:
            stmt = select(SubscriptionRow).where(SubscriptionRow.uid == uid)
            if statuses is not None:
                stmt = stmt.where(SubscriptionRow.status.in_(list(statuses)))
            return [copy.deepcopy(row.data) for row in session.execute(stmt).scalars()]

    def save_template(self, template_id: str, data: dict) -> None:
        with self._session(f"save template {template_id}") as session:
            row = session.get(TemplateRow, template_id)
            if row:
                row.data = data
            else:
                session.add(TemplateRow(id=template_id, data=data))
            session.commit()

    def list_templates(self) -> list[dict]:
        with self._session("list templates") as session:
            rows = session.execute(select(TemplateRow).order_by(TemplateRow.id)).scalars()
            return [{"id": row.id, **copy.deepcopy(row.data)} for row in rows]


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    uid = Column(String, primary_key=True)
    username = Column(String, nullable=True, index=True)
    data = Column(JSON, nullable=False)


class SubscriptionRow(Base):
    __tablename__ = "subscriptions"

    id = Column(String, primary_key=True)
    uid = Column(String, nullable=False, index=True)
    status = Column(String, nullable=True, index=True)
    data = Column(JSON, nullable=False)


class TemplateRow(Base):
    __tablename__ = "templates"

    id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
