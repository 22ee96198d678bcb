import itertools
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.config import settings
from app.database import get_db

JWT_SECRET = "test-jwt-secret"

_clock = itertools.count()


def _created_at():
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return (base + timedelta(seconds=next(_clock))).isoformat()


def _embedded_relation(columns):
    """Parse ``*, users!inner(...)`` style selects into (relation, inner)."""
    match = re.search(r"(\w+)(!inner)?\(", columns or "")
    if not match:
        return None
    return match.group(1), bool(match.group(2))


class FakeQuery:
    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.count_mode = None
        self.payload = None
        self.on_conflict = ""
        self.filters = []
        self.sort = []
        self.max_rows = None

    # builders

    def select(self, columns="*", count=None):
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, rows):
        self.action, self.payload = "insert", rows
        return self

    def update(self, values):
        self.action, self.payload = "update", values
        return self

    def upsert(self, rows, on_conflict="", ignore_duplicates=False):
        self.action, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: self._value(row, column) == value)
        return self

    def ilike(self, column, pattern):
        regex = re.compile("^" + re.escape(pattern).replace("%", ".*") + "$", re.IGNORECASE)
        self.filters.append(lambda row: regex.match(str(self._value(row, column) or "")) is not None)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: self._value(row, column) is not None and self._value(row, column) >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: self._value(row, column) is not None and self._value(row, column) <= value)
        return self

    def order(self, column, desc=False):
        self.sort.append((column, desc))
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    # evaluation

    @staticmethod
    def _value(row, column):
        if "." in column:
            relation, field = column.split(".", 1)
            return (row.get(relation) or {}).get(field)
        return row.get(column)

    def _rows(self):
        return self.store.setdefault(self.table, [])

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def _with_embed(self, row):
        embed = _embedded_relation(self.columns)
        row = dict(row)
        if embed:
            relation, _ = embed
            related = next(
                (dict(r) for r in self.store.get(relation, []) if r.get("id") == row.get("user_id")),
                None,
            )
            row[relation] = related
        return row

    def _new_row(self, data):
        row = {"id": str(uuid.uuid4()), "created_at": _created_at(), **data}
        self._rows().append(row)
        return row

    def execute(self):
        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            data = [dict(self._new_row(item)) for item in items]
            return SimpleNamespace(data=data, count=None)

        if self.action == "upsert":
            keys = [k.strip() for k in self.on_conflict.split(",") if k.strip()]
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            data = []
            for item in items:
                existing = next(
                    (r for r in self._rows() if keys and all(r.get(k) == item.get(k) for k in keys)),
                    None,
                )
                if existing is not None:
                    existing.update(item)
                    data.append(dict(existing))
                else:
                    data.append(dict(self._new_row(item)))
            return SimpleNamespace(data=data, count=None)

        if self.action == "update":
            matched = [r for r in self._rows() if self._matches(r)]
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        if self.action == "delete":
            matched = [r for r in self._rows() if self._matches(r)]
            self.store[self.table] = [r for r in self._rows() if r not in matched]
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        embed = _embedded_relation(self.columns)
        rows = [self._with_embed(r) for r in self._rows()]
        if embed and embed[1]:
            rows = [r for r in rows if r.get(embed[0]) is not None]
        rows = [r for r in rows if self._matches(r)]

        for column, desc in reversed(self.sort):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            rows = present + missing

        count = len(rows) if self.count_mode else None
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        return SimpleNamespace(data=rows, count=count)


class FakeAuthUser:
    def __init__(self, email, password, user_metadata=None, id=None):
        self.id = id or str(uuid.uuid4())
        self.email = email
        self.password = password
        self.user_metadata = user_metadata or {}

    def model_dump(self, mode=None):
        return {"id": self.id, "email": self.email, "user_metadata": dict(self.user_metadata)}


class FakeAuthAdmin:
    def __init__(self, auth):
        self.auth = auth
        self.fail_create = None

    def list_users(self, page=None, per_page=None):
        page, per_page = page or 1, per_page or 50
        start = (page - 1) * per_page
        return self.auth.users[start:start + per_page]

    def create_user(self, attributes):
        if self.fail_create:
            raise Exception(self.fail_create)
        user = FakeAuthUser(
            attributes["email"],
            attributes["password"],
            attributes.get("user_metadata"),
        )
        self.auth.users.append(user)
        return SimpleNamespace(user=user)

    def update_user_by_id(self, uid, attributes):
        user = next(u for u in self.auth.users if u.id == uid)
        if "password" in attributes:
            user.password = attributes["password"]
        if "user_metadata" in attributes:
            user.user_metadata = dict(attributes["user_metadata"])
        return SimpleNamespace(user=user)

    def delete_user(self, uid):
        self.auth.users = [u for u in self.auth.users if u.id != uid]


class FakeAuth:
    def __init__(self):
        self.users = []
        self.admin = FakeAuthAdmin(self)

    def sign_in_with_password(self, credentials):
        for user in self.users:
            if user.email == credentials["email"] and user.password == credentials["password"]:
                session = SimpleNamespace(access_token=f"token-{user.id}", refresh_token="refresh")
                return SimpleNamespace(user=user, session=session)
        raise Exception("Invalid login credentials")

    def get_user(self, token):
        for user in self.users:
            if token == f"token-{user.id}":
                return SimpleNamespace(user=user)
        raise Exception("Invalid JWT")


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, content, options=None):
        self.storage.files[(self.name, path)] = (content, options)
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.storage.files.pop((self.name, path), None)
        return [SimpleNamespace(name=path) for path in paths]


class FakeStorage:
    def __init__(self):
        self.files = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeClient:
    def __init__(self, store, auth, storage):
        self.store = store
        self.auth = auth
        self.storage = storage

    def table(self, name):
        return FakeQuery(self.store, name)


class FakeSupabase:
    """In-memory stand-in for SupabaseService."""

    def __init__(self):
        self.store = {"users": [], "attendance": [], "leaves": []}
        self.auth = FakeAuth()
        self.storage = FakeStorage()
        self.client = FakeClient(self.store, self.auth, self.storage)

    def get_admin_client(self):
        return self.client

    def get_client(self):
        return self.client

    def rows(self, table):
        return self.store[table]

    def add_auth_user(self, email, password, user_metadata=None):
        auth_user = FakeAuthUser(email, password, user_metadata)
        self.auth.users.append(auth_user)
        return auth_user

    def add_user(self, employee_id, name, role="user", password="secret123", **fields):
        email = fields.pop("email", f"{employee_id.lower()}@example.com")
        auth_user = self.add_auth_user(email, password, {"role": role, "name": name})
        row = {
            "id": auth_user.id,
            "employee_id": employee_id,
            "username": employee_id.lower(),
            "email": email,
            "name": name,
            "role": role,
            "designation": fields.pop("designation", "Engineer"),
            "mobile": None,
            "ien": None,
            "profile_url": None,
            "created_at": _created_at(),
            **fields,
        }
        self.store["users"].append(row)
        return row

    def add_attendance(self, user_id, date, **fields):
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "date": date,
            "check_in": None,
            "check_out": None,
            "total_time_minutes": None,
            "is_absent": False,
            "absence_reason": None,
            "manual_entry": False,
            **fields,
        }
        self.store["attendance"].append(row)
        return row


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", JWT_SECRET)
    return JWT_SECRET


@pytest.fixture
def make_token(jwt_secret):
    def _make(user_id):
        claims = {
            "sub": user_id,
            "aud": "authenticated",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        return jwt.encode(claims, jwt_secret, algorithm="HS256")
    return _make


@pytest.fixture
def client(fake_db):
    from app.main import app

    app.dependency_overrides[get_db] = lambda: fake_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin(fake_db):
    return fake_db.add_user("ADM001", "Asha Admin", role="admin")


@pytest.fixture
def employee(fake_db):
    return fake_db.add_user("EMP001", "Ravi Kumar", designation="Developer")


@pytest.fixture
def admin_headers(admin, make_token):
    return {"Authorization": f"Bearer {make_token(admin['id'])}"}


@pytest.fixture
def user_headers(employee, make_token):
    return {"Authorization": f"Bearer {make_token(employee['id'])}"}
