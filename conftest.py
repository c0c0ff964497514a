# conftest.py
"""
Shared pytest fixtures: an in-memory Firestore double and a Flask app wired with it.

The double implements only what the services use: documents, sub-collections,
where/order_by/limit/start_after queries, transactions, batches and
firestore.Increment.
"""
import copy
import itertools
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, create_autospec

import pytest
import stripe
from firebase_admin import firestore
from flask_jwt_extended import create_access_token
from google.api_core.exceptions import NotFound

from melbox import create_app
from melbox.api.auth.services import AuthService
from melbox.api.bookings.services import BookingService
from melbox.api.gallery.services import GalleryService
from melbox.api.courses.services import CourseService
from melbox.api.videos.services import VideoService
from melbox.api.games.services import GameProgressService
from melbox.api.profile.services import UserStatsService
from melbox.api.parties.services import PartyPackageService
from melbox.api.reports.services import ReportService
from melbox.api.social.services import SocialService
from melbox.services.payment_service import PaymentService
from melbox.services.storage_service import StorageService

_OPS = {
    '==': lambda a, b: a == b,
    '!=': lambda a, b: a != b,
    '<': lambda a, b: a is not None and a < b,
    '<=': lambda a, b: a is not None and a <= b,
    '>': lambda a, b: a is not None and a > b,
    '>=': lambda a, b: a is not None and a >= b,
    'in': lambda a, b: a in b,
}


def _merge_fields(target, data):
    """set(merge=True) semantics: nested maps merge, Increment adds to the stored number."""
    for key, value in data.items():
        if isinstance(value, firestore.Increment):
            target[key] = (target.get(key) or 0) + value.value
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_fields(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocument:
    def __init__(self, db, path):
        self._db = db
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    def get(self, transaction=None, **kwargs):
        return FakeSnapshot(self, copy.deepcopy(self._db.docs.get(self.path)))

    def set(self, data, merge=False):
        current = self._db.docs.get(self.path) if merge else None
        self._db.docs[self.path] = _merge_fields(copy.deepcopy(current or {}), data)

    def update(self, data):
        if self.path not in self._db.docs:
            raise NotFound(f"No document to update: {self.path}")
        current = self._db.docs[self.path]
        for key, value in data.items():
            if isinstance(value, firestore.Increment):
                current[key] = (current.get(key) or 0) + value.value
            else:
                current[key] = copy.deepcopy(value)

    def delete(self):
        self._db.docs.pop(self.path, None)

    def collection(self, name):
        return FakeCollection(self._db, f"{self.path}/{name}")


class FakeQuery:
    def __init__(self, db, path, filters=(), orders=(), limit_count=None, cursor=None):
        self._db = db
        self._path = path
        self._filters = filters
        self._orders = orders
        self._limit = limit_count
        self._cursor = cursor

    def _copy(self, **changes):
        state = dict(filters=self._filters, orders=self._orders, limit_count=self._limit, cursor=self._cursor)
        state.update(changes)
        return FakeQuery(self._db, self._path, **state)

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path, direction='ASCENDING'):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count):
        return self._copy(limit_count=count)

    def start_after(self, document_fields_or_snapshot):
        values = document_fields_or_snapshot
        if isinstance(values, FakeSnapshot):
            values = values.to_dict()
        return self._copy(cursor=dict(values))

    def _is_after_cursor(self, data):
        for field_path, direction in self._orders:
            a, b = data.get(field_path), self._cursor.get(field_path)
            if a == b:
                continue
            return a < b if direction == firestore.Query.DESCENDING else a > b
        return False

    def stream(self, transaction=None):
        prefix = self._path + '/'
        snapshots = [
            FakeSnapshot(FakeDocument(self._db, path), copy.deepcopy(data))
            for path, data in self._db.docs.items()
            if path.startswith(prefix) and '/' not in path[len(prefix):]
        ]
        for field_path, op_string, value in self._filters:
            snapshots = [s for s in snapshots if _OPS[op_string](s._data.get(field_path), value)]
        for field_path, direction in reversed(self._orders):
            snapshots.sort(key=lambda s: s._data.get(field_path), reverse=direction == firestore.Query.DESCENDING)
        if self._cursor is not None:
            snapshots = [s for s in snapshots if self._is_after_cursor(s._data)]
        if self._limit is not None:
            snapshots = snapshots[:self._limit]
        return iter(snapshots)

    def get(self, transaction=None):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, path):
        super().__init__(db, path)
        self.id = path.rsplit('/', 1)[-1]

    def document(self, document_id=None):
        return FakeDocument(self._db, f"{self._path}/{document_id or self._db.auto_id()}")


class FakeTransaction:
    def set(self, reference, data, merge=False):
        reference.set(data, merge=merge)

    def update(self, reference, data):
        reference.update(data)

    def delete(self, reference):
        reference.delete()


class FakeBatch(FakeTransaction):
    def __init__(self):
        self._ops = []

    def set(self, reference, data, merge=False):
        self._ops.append(lambda: reference.set(data, merge=merge))

    def update(self, reference, data):
        self._ops.append(lambda: reference.update(data))

    def delete(self, reference):
        self._ops.append(reference.delete)

    def commit(self):
        for op in self._ops:
            op()
        self._ops = []


class FakeFirestore:
    def __init__(self):
        self.docs = {}
        self._ids = itertools.count(1)

    def auto_id(self):
        return f"auto{next(self._ids)}"

    def collection(self, name):
        return FakeCollection(self, name)

    def transaction(self):
        return FakeTransaction()

    def batch(self):
        return FakeBatch()

    def get_all(self, references):
        return [reference.get() for reference in references]


@pytest.fixture(autouse=True)
def plain_transactions(monkeypatch):
    """Run @firestore.transactional functions once, directly against the fake."""
    monkeypatch.setattr(firestore, 'transactional', lambda fn: fn)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def storage_service():
    return create_autospec(StorageService, instance=True)


@pytest.fixture
def payment_service():
    return PaymentService(secret_key='sk_test_123', webhook_secret='whsec_test',
                          currency='usd', base_url='http://testserver')


@pytest.fixture
def services(fake_db, storage_service, payment_service):
    packages = PartyPackageService(db=fake_db)
    return {
        'storage': storage_service,
        'payments': payment_service,
        'auth': AuthService(db=fake_db, admin_emails=['admin@example.com']),
        'social': SocialService(db=fake_db, storage_service=storage_service),
        'reports': ReportService(db=fake_db),
        'packages': packages,
        'bookings': BookingService(payment_service=payment_service, package_service=packages, db=fake_db),
        'gallery': GalleryService(db=fake_db, storage_service=storage_service),
        'courses': CourseService(db=fake_db),
        'videos': VideoService(db=fake_db, storage_service=storage_service),
        'games': GameProgressService(db=fake_db),
        'stats': UserStatsService(db=fake_db),
    }


@pytest.fixture
def app(services):
    return create_app('testing', services=services)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """auth_headers(user_id=..., is_admin=...) -> Authorization header for that user."""
    def _make(user_id='u1', email='mel@example.com', name='Mel', is_admin=False):
        with app.app_context():
            token = create_access_token(
                identity=user_id,
                additional_claims={'email': email, 'name': name, 'is_admin': is_admin}
            )
        return {'Authorization': f'Bearer {token}'}
    return _make


@pytest.fixture
def fairy_package(services):
    """A $250 package stored as 'pkg1'."""
    services['packages'].packages_ref.document('pkg1').set({
        'package_id': 'pkg1', 'name': 'Fairy Party', 'price': 250.0, 'duration': '2 hours',
        'kids_count': 15, 'includes': ['Face paint'], 'icon': None, 'badge': None, 'description': None,
        'created_at': datetime(2025, 1, 1, tzinfo=timezone.utc),
    })
    return 'pkg1'


@pytest.fixture
def stripe_api(monkeypatch):
    """Stripe checkout / refund endpoints replaced by MagicMocks."""
    api = SimpleNamespace(
        create_session=MagicMock(return_value=SimpleNamespace(id='cs_test_1', url='https://checkout.stripe.com/c/pay/cs_test_1')),
        retrieve_session=MagicMock(return_value=SimpleNamespace(payment_intent='pi_from_session')),
        create_refund=MagicMock(return_value=SimpleNamespace(id='re_1', amount=25000, status='succeeded')),
    )
    monkeypatch.setattr(stripe.checkout.Session, 'create', api.create_session)
    monkeypatch.setattr(stripe.checkout.Session, 'retrieve', api.retrieve_session)
    monkeypatch.setattr(stripe.Refund, 'create', api.create_refund)
    return api
