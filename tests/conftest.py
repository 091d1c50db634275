import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from disclosures.db.models import create_db_and_tables
from disclosures.ingestion.fetchers import HouseDisclosureClient
from disclosures.ingestion.storage import LocalBlobStore

BASE_URL = "https://clerk.example/public_disc"

ADERHOLT_TEXT = """Filing ID #20032062
FILER INFORMATION
Name:
Hon. Robert B. Aderholt
Status:
Member
State/District: AL04
TRANSACTIONS
ID Owner Asset Transaction Type Date Notification Date Amount Cap. Gains > $200?
GSK plc American Depositary Shares (GSK) S
[ST]
07/28/2025 08/01/2025 $1,001 - $15,000
FILING STATUS: New
"""


class FakeHttp:
    """Stands in for requests.Session, answering (method, url) pairs with canned responses."""

    def __init__(self):
        self.headers = {}
        self.routes = {}
        self.calls = []

    def add(self, method, url, status_code=200, content=b"", etag=None):
        self.routes[(method, url)] = (status_code, content, etag)

    def fail(self, method, url, exc):
        self.routes[(method, url)] = exc

    def request(self, method, url, timeout=None, allow_redirects=True):
        self.calls.append((method, url))
        route = self.routes.get((method, url), (404, b"", None))
        if isinstance(route, Exception):
            raise route
        status_code, content, etag = route
        response = requests.Response()
        response.status_code = status_code
        response.url = url
        response._content = content if method == "GET" else b""
        if etag is not None:
            response.headers["ETag"] = etag
        return response

    def count(self, method):
        return sum(1 for m, _ in self.calls if m == method)


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    create_db_and_tables(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def client(blob_store, fake_http):
    return HouseDisclosureClient(blob_store, base_url=BASE_URL, session=fake_http)


@pytest.fixture
def aderholt_text():
    return ADERHOLT_TEXT
