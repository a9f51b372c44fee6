# conftest.py
import asyncio
import random
import string

import httpx
import pytest

from scanorder.config import Settings
from scanorder.db import init_db, make_engine, make_session_factory
from scanorder.devserver.main import create_app
from scanorder.schemas.cart import MenuItem, Modifier
from scanorder.session import OrderingSession
from scanorder.storage import LocalStorage

TABLE = "T-1"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        API_BASE_URL="http://testserver",
        CUSTOMER_URL="http://customer.test",
        STATE_DB_URL="sqlite://",
        PAYMENT_POLL_DELAY=3.0,
        REDIRECT_DELAY=0,
    )


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def storage(session_factory):
    return LocalStorage(session_factory)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def dev(app):
    st = app.state.dev
    st.seed_demo(TABLE)
    return st


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_session(settings, app, dev, session_factory, sleeps):
    """Sessions wired to the dev backend in-process; they share one state db, like one device."""
    made = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    def _make(**overrides):
        s = OrderingSession(
            settings.model_copy(update=overrides) if overrides else settings,
            transport=httpx.ASGITransport(app=app),
            session_factory=session_factory,
            sleep=fake_sleep,
        )
        made.append(s)
        return s

    yield _make
    for s in made:
        asyncio.run(s.aclose())


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def burger():
    return MenuItem(id="burger", name="Burger", price=10.00)


@pytest.fixture
def cheese():
    return Modifier(id="cheese", name="Cheese", price=1.50)


@pytest.fixture
def place_order(session, burger):
    """Seat the session at the test table, fill the cart and submit."""
    async def _place(pay_now: bool = True, quantity: int = 2, **kw):
        session.table.set(TABLE)
        session.cart.add(burger, quantity)
        return await session.workflow.submit(pay_now=pay_now, **kw)
    return _place


@pytest.fixture(scope="session")
def rng_suffix():
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
