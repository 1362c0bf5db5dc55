# conftest.py
"""
테스트 공용 fixture 모음.

Firestore/Storage/Gemini는 메모리 안에서 동작하는 가짜 객체로 대체합니다.
- FakeFirestore 트랜잭션은 DB 단위 락으로 직렬화되고, 커밋 시 모든 쓰기를 한 번에 반영합니다.
- 서비스 모듈의 `firestore` 심볼(transactional, Increment, Query)을 가짜 구현으로 교체합니다.
"""
import copy
import io
import threading
import uuid
from types import SimpleNamespace

import pytest
import requests
from PIL import Image

from pethero.core.config import PipelineSettings
from pethero.services.gemini_service import InlineImage, ModelResponse


# =====================================================================================
# Firestore
# =====================================================================================
class FakeIncrement:
    def __init__(self, value):
        self.value = value


def _apply_fields(current: dict, data: dict) -> dict:
    merged = dict(current)
    for key, value in data.items():
        if isinstance(value, FakeIncrement):
            merged[key] = (merged.get(key) or 0) + value.value
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data)

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, db, collection_name, doc_id):
        self._db = db
        self.collection_name = collection_name
        self.id = doc_id

    @property
    def _key(self):
        return self.collection_name, self.id

    def get(self, transaction=None):
        with self._db.lock:
            return FakeSnapshot(self, self._db.store.get(self._key))

    def set(self, data, merge=False):
        with self._db.lock:
            self._db.check_write(self)
            self._db.apply_set(self, data, merge)

    def update(self, data):
        with self._db.lock:
            self._db.check_write(self)
            self._db.apply_update(self, data)


class FakeQuery:
    def __init__(self, db, collection_name, filters=None, order=None, limit_count=None):
        self._db = db
        self.collection_name = collection_name
        self.filters = filters or []
        self.order = order
        self.limit_count = limit_count

    def _copy(self, **changes):
        params = dict(filters=list(self.filters), order=self.order, limit_count=self.limit_count)
        params.update(changes)
        return FakeQuery(self._db, self.collection_name, **params)

    def where(self, field, op, value):
        assert op == '==', "FakeQuery only supports equality filters"
        return self._copy(filters=self.filters + [(field, value)])

    def order_by(self, field, direction='ASCENDING'):
        return self._copy(order=(field, direction))

    def limit(self, count):
        return self._copy(limit_count=count)

    def stream(self):
        if self.order and self._db.fail_ordered_queries:
            raise RuntimeError("FAILED_PRECONDITION: The query requires an index.")
        with self._db.lock:
            rows = [
                (doc_id, data) for (name, doc_id), data in self._db.store.items()
                if name == self.collection_name and all(data.get(f) == v for f, v in self.filters)
            ]
        if self.order:
            field, direction = self.order
            rows.sort(key=lambda row: row[1].get(field), reverse=direction == 'DESCENDING')
        if self.limit_count is not None:
            rows = rows[:self.limit_count]
        return iter([FakeSnapshot(FakeDocumentRef(self._db, self.collection_name, doc_id), data)
                     for doc_id, data in rows])


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, self.collection_name, doc_id or uuid.uuid4().hex)


class FakeTransaction:
    def __init__(self, db):
        self._db = db
        self.writes = []

    def update(self, ref, data):
        self.writes.append(('update', ref, data, False))

    def set(self, ref, data, merge=False):
        self.writes.append(('set', ref, data, merge))

    def commit(self):
        if self._db.fail_transactions:
            raise RuntimeError("ABORTED: Too much contention on these documents.")
        for kind, ref, data, merge in self.writes:
            self._db.check_write(ref)
        for kind, ref, data, merge in self.writes:
            if kind == 'update':
                self._db.apply_update(ref, data)
            else:
                self._db.apply_set(ref, data, merge)
        self._db.committed_transactions += 1


class FakeFirestore:
    def __init__(self):
        self.store = {}
        self.lock = threading.RLock()
        self.fail_transactions = False
        self.fail_ordered_queries = False
        # (collection, doc_id) 쌍. 해당 문서에 대한 모든 쓰기가 실패합니다.
        self.failing_documents = set()
        self.committed_transactions = 0

    def collection(self, name):
        return FakeCollection(self, name)

    def transaction(self):
        return FakeTransaction(self)

    def check_write(self, ref):
        if ref._key in self.failing_documents:
            raise RuntimeError(f"UNAVAILABLE: write to {ref.collection_name}/{ref.id} failed")

    def apply_set(self, ref, data, merge):
        current = self.store.get(ref._key) if merge else None
        self.store[ref._key] = _apply_fields(current or {}, data)

    def apply_update(self, ref, data):
        if ref._key not in self.store:
            raise RuntimeError(f"NOT_FOUND: No document to update: {ref.collection_name}/{ref.id}")
        self.store[ref._key] = _apply_fields(self.store[ref._key], data)

    # --- 테스트 편의 함수 ---
    def put(self, collection_name, doc_id, data):
        self.store[(collection_name, doc_id)] = copy.deepcopy(data)

    def data(self, collection_name, doc_id):
        return copy.deepcopy(self.store.get((collection_name, doc_id)))

    def all(self, collection_name):
        return [copy.deepcopy(data) for (name, _), data in self.store.items() if name == collection_name]


def fake_transactional(fn):
    def wrapper(transaction, *args, **kwargs):
        with transaction._db.lock:
            result = fn(transaction, *args, **kwargs)
            transaction.commit()
            return result
    return wrapper


def _no_default_client():
    raise AssertionError("tests must pass the fake db explicitly")


FAKE_FIRESTORE_MODULE = SimpleNamespace(
    transactional=fake_transactional,
    Increment=FakeIncrement,
    Query=SimpleNamespace(ASCENDING='ASCENDING', DESCENDING='DESCENDING'),
    client=_no_default_client,
)

FIRESTORE_USERS = (
    'pethero.services.ledger_service',
    'pethero.services.notification_service',
    'pethero.pipeline.photo_pipeline',
    'pethero.api.users.services',
    'pethero.api.photos.services',
)


@pytest.fixture
def fake_db(monkeypatch):
    for module_name in FIRESTORE_USERS:
        monkeypatch.setattr(f"{module_name}.firestore", FAKE_FIRESTORE_MODULE)
    return FakeFirestore()


# =====================================================================================
# Storage
# =====================================================================================
class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.data = None
        self.content_type = None
        self.is_public = False

    def exists(self):
        return self.data is not None

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise RuntimeError("503 Service Unavailable")
        self.data = data
        self.content_type = content_type

    def make_public(self):
        self.is_public = True

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"

    def generate_signed_url(self, version, expiration, method, content_type):
        return f"https://signed.example.com/{self.name}?method={method}&content_type={content_type}"


class FakeBucket:
    def __init__(self, name='pethero-test.appspot.com'):
        self.name = name
        self.blobs = {}
        self.fail_uploads = False

    def blob(self, name):
        if name not in self.blobs:
            self.blobs[name] = FakeBlob(self, name)
        return self.blobs[name]


@pytest.fixture
def fake_bucket():
    return FakeBucket()


# =====================================================================================
# Gemini
# =====================================================================================
class ScriptedGeminiClient:
    """
    모델 이름별로 미리 정한 결과를 순서대로 돌려주는 가짜 GeminiService.
    결과가 str이면 텍스트 응답, bytes면 이미지 응답, 예외 인스턴스면 raise 합니다.
    """

    def __init__(self, script=None):
        self.script = {model: list(outcomes) for model, outcomes in (script or {}).items()}
        self.calls = []

    def generate_content(self, model, text, image=None):
        self.calls.append(SimpleNamespace(model=model, text=text, image=image))
        outcomes = self.script.get(model)
        if not outcomes:
            raise RuntimeError(f"unexpected call to {model}")
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, ModelResponse):
            return outcome
        if isinstance(outcome, bytes):
            return ModelResponse(inline_image_parts=[InlineImage(data=outcome, mime_type='image/png')])
        return ModelResponse(text_parts=[outcome])


@pytest.fixture
def scripted_gemini():
    return ScriptedGeminiClient


# =====================================================================================
# 이미지 / HTTP
# =====================================================================================
def make_image_bytes(width, height, fmt='JPEG', color=(200, 120, 40)):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, content=b'', status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error", response=self)


class FakeSession:
    """URL별 응답(FakeResponse) 또는 예외를 돌려주는 requests.Session 대체 객체"""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        outcome = self.routes.get(url, FakeResponse(status_code=404))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def make_jpeg():
    return make_image_bytes


@pytest.fixture
def http():
    """FakeSession/FakeResponse 생성용 네임스페이스"""
    return SimpleNamespace(Session=FakeSession, Response=FakeResponse)


@pytest.fixture
def settings():
    return PipelineSettings()


# =====================================================================================
# Flask
# =====================================================================================
@pytest.fixture
def app(fake_db, fake_bucket):
    from pethero import create_app
    from pethero.api.auth.services import AuthService
    from pethero.api.photos.services import PhotoJobService
    from pethero.api.users.services import UserService
    from pethero.services.storage_service import StorageService

    users = UserService(db=fake_db, initial_credits=1)

    def verify(id_token):
        if not id_token.startswith('valid:'):
            raise ValueError("Invalid ID token")
        return {'uid': id_token.split(':', 1)[1]}

    app = create_app('testing', services={
        'storage': StorageService(bucket=fake_bucket),
        'users': users,
        'auth': AuthService(user_service=users, verifier=verify),
        'photos': PhotoJobService(db=fake_db),
    })
    app.fake_db = fake_db
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    from flask_jwt_extended import create_access_token

    def _headers(user_id='user-1'):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {'Authorization': f'Bearer {token}'}
    return _headers
