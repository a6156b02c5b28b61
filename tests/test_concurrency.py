import threading
import time

import pytest
from sqlalchemy.orm import sessionmaker

from core.clock import FixedClock
from core.errors import ContractNotPending, EscrowError
from core.locks import KeyedLocks
from database.config import build_engine, init_db
from database.models import ContractStatusDB, EventTypeDB
from services.escrow_service import EscrowService

from conftest import BRAND, DAY, FEE, INFLUENCER, ORACLE, SCALE, T0, WEEK, FakeOracleClient


@pytest.fixture
def file_sessions(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'escrow.db'}")
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def world(file_sessions):
    """Factory for services that share a database, a clock and a lock registry."""
    clock = FixedClock(T0)
    locks = KeyedLocks()
    oracle_client = FakeOracleClient()
    sessions = []

    def _service():
        session = file_sessions()
        sessions.append(session)
        return EscrowService(
            session, clock,
            oracle_client=oracle_client,
            trusted_oracles={ORACLE},
            locks=locks,
            fee=FEE,
        )

    _service.clock = clock
    _service.locks = locks
    yield _service
    for session in sessions:
        session.close()


def run_threads(targets):
    results, errors = [], []
    start = threading.Barrier(len(targets))

    def wrap(fn):
        start.wait()
        try:
            results.append(fn())
        except EscrowError as e:
            errors.append(e)

    threads = [threading.Thread(target=wrap, args=(fn,)) for fn in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


def make_active(world):
    setup = world()
    setup.deposit_fees("fee-sponsor", 10 * FEE)
    setup.create_and_deposit("camp-1", BRAND, INFLUENCER, 1000, 500 * SCALE, T0 + DAY, WEEK, 1000)
    setup.accept("camp-1", INFLUENCER)
    world.clock.set(T0 + WEEK)
    return setup


def test_racing_responses_pay_exactly_once(world):
    setup = make_active(world)
    first = setup.request_verification("camp-1")["id"]
    second = setup.request_verification("camp-1")["id"]

    calls = []
    for i in range(6):
        request_id = first if i % 2 else second
        metric = 900 * SCALE if i % 3 else 100 * SCALE
        svc = world()
        calls.append(lambda svc=svc, r=request_id, m=metric: svc.handle_oracle_response(r, m, ORACLE))

    results, errors = run_threads(calls)

    assert errors == []
    settled = [r for r in results if r is not None]
    assert len(settled) == 1

    check = world()
    contract = check.get("camp-1")
    assert contract.status in (ContractStatusDB.COMPLETED, ContractStatusDB.REFUNDED)
    assert check.custodian.balance_of(INFLUENCER) + check.custodian.balance_of(BRAND) == 1000
    assert check.router.outstanding("camp-1") == []

    types = [e.event_type for e in check.events.list(offer_id="camp-1")]
    assert types.count(EventTypeDB.VERIFICATION_FULFILLED) == 1
    assert types.count(EventTypeDB.PAYMENT_RELEASED) + types.count(EventTypeDB.PAYMENT_REFUNDED) == 1
    assert len(world.locks) == 0


def test_accept_and_reject_race(world):
    setup = world()
    setup.create_and_deposit("camp-1", BRAND, INFLUENCER, 1000, 500 * SCALE, T0 + DAY, WEEK, 1000)

    services = [world() for _ in range(4)]
    calls = [
        lambda: services[0].accept("camp-1", INFLUENCER),
        lambda: services[1].reject("camp-1", INFLUENCER),
        lambda: services[2].accept("camp-1", INFLUENCER),
        lambda: services[3].reject("camp-1", INFLUENCER),
    ]

    results, errors = run_threads(calls)

    assert len(results) == 1
    assert len(errors) == 3
    status = world().get("camp-1").status
    assert status in (ContractStatusDB.ACTIVE, ContractStatusDB.REJECTED)
    assert world().custodian.balance_of(BRAND) == (1000 if status == ContractStatusDB.REJECTED else 0)


def test_expiry_from_another_process_is_not_overwritten(file_sessions):
    clock = FixedClock(T0)
    entered, release = threading.Event(), threading.Event()

    def paused_transfer(recipient, amount):
        entered.set()
        release.wait(timeout=5)

    def process_service(transfer=None):
        # A lock registry of its own, like a separate worker process
        return EscrowService(
            file_sessions(), clock,
            oracle_client=FakeOracleClient(),
            trusted_oracles={ORACLE},
            locks=KeyedLocks(),
            transfer=transfer,
            fee=FEE,
        )

    api = process_service()
    api.create_and_deposit("camp-1", BRAND, INFLUENCER, 1000, 500 * SCALE, T0 + DAY, WEEK, 1000)
    clock.set(T0 + DAY)
    keeper = process_service(transfer=paused_transfer)

    outcome = {}

    def run(name, fn):
        try:
            outcome[name] = fn().status
        except EscrowError as e:
            outcome[name] = e

    keeper_thread = threading.Thread(target=run, args=("keeper", lambda: keeper.check_expired("camp-1")))
    keeper_thread.start()
    assert entered.wait(timeout=5)

    api_thread = threading.Thread(target=run, args=("api", lambda: api.accept("camp-1", INFLUENCER)))
    api_thread.start()
    time.sleep(0.2)
    release.set()
    keeper_thread.join()
    api_thread.join()

    assert outcome["keeper"] == ContractStatusDB.EXPIRED
    assert isinstance(outcome["api"], ContractNotPending)

    check = process_service()
    assert check.get("camp-1").status == ContractStatusDB.EXPIRED
    assert check.custodian.held("camp-1") == 0
    assert check.custodian.balance_of(BRAND) == 1000
