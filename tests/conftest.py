import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth.capabilities import OwnerCapability, get_owner_capability
from auth.tokens import create_access_token
from core.clock import FixedClock, get_clock
from core.oracle_client import OracleClientError
from database.config import get_db, init_db
from services.escrow_service import EscrowService, get_escrow_service

T0 = 1_700_000_000
SCALE = 10 ** 18
FEE = 10 ** 17
DAY = 86400
WEEK = 604800

BRAND = "brand-1"
INFLUENCER = "influencer-1"
ORACLE = "oracle-node-1"
OWNER = "owner-1"
STRANGER = "stranger-1"


class FakeOracleClient:
    """Records dispatched requests instead of calling a node."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_request(self, payload):
        if self.fail:
            raise OracleClientError("node unreachable")
        self.sent.append(payload)
        return {"accepted": True}

    @property
    def last(self):
        return self.sent[-1]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def oracle_client():
    return FakeOracleClient()


@pytest.fixture
def make_service(db, clock, oracle_client):
    def _make(session=None, **kwargs):
        kwargs.setdefault("trusted_oracles", {ORACLE})
        kwargs.setdefault("fee", FEE)
        return EscrowService(session or db, clock, oracle_client=oracle_client, **kwargs)
    return _make


@pytest.fixture
def service(make_service):
    svc = make_service()
    svc.deposit_fees("fee-sponsor", 10 * FEE)
    return svc


@pytest.fixture
def create_offer(service):
    def _create(offer_id="camp-1", amount=1000, minimum=500 * SCALE, **overrides):
        params = dict(
            offer_id=offer_id,
            brand=BRAND,
            influencer=INFLUENCER,
            amount=amount,
            minimum_engagement=minimum,
            expired_at=T0 + DAY,
            duration=WEEK,
            tendered=amount,
        )
        params.update(overrides)
        return service.create_and_deposit(**params)
    return _create


@pytest.fixture
def active_offer(service, clock, create_offer):
    """camp-1 accepted at T0+10 and past its duration."""
    create_offer()
    clock.set(T0 + 10)
    service.accept("camp-1", INFLUENCER)
    clock.set(T0 + 10 + WEEK)
    return "camp-1"


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
def client(session_factory, clock, oracle_client):
    from server import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_service(db=Depends(get_db)):
        return EscrowService(db, clock, oracle_client=oracle_client, trusted_oracles={ORACLE}, fee=FEE)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_escrow_service] = override_service
    app.dependency_overrides[get_owner_capability] = lambda: OwnerCapability(OWNER)

    # No context manager: skip startup so the default database is never touched
    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_headers(address):
    return {"Authorization": f"Bearer {create_access_token(address)}"}
