"""One ordering session: a single store per concern, shared by every service."""
import asyncio
from typing import Awaitable, Callable

import httpx
from sqlalchemy.orm import sessionmaker

from scanorder.config import Settings, settings as default_settings
from scanorder.db import init_db, make_engine, make_session_factory
from scanorder.http import ApiClient
from scanorder.services.auth import AuthService, AuthState, TokenProvider, device_id
from scanorder.services.menu import MenuService
from scanorder.services.orders import OrderService, OrderWorkflow
from scanorder.services.payments import PaymentService, PaymentVerifier
from scanorder.services.waiter import CashPaymentService, WaiterCallService
from scanorder.storage import CookieJar, LocalStorage
from scanorder.stores import CartStore, FavoritesStore, LoyaltyStore, OrdersStore, TableStore


class OrderingSession:
    def __init__(self, settings: Settings | None = None, *,
                 transport: httpx.AsyncBaseTransport | None = None,
                 session_factory: sessionmaker | None = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.settings = settings or default_settings
        if session_factory is None:
            engine = make_engine(self.settings.STATE_DB_URL)
            init_db(engine)
            session_factory = make_session_factory(engine)
        self._sleep = sleep

        self.storage = LocalStorage(session_factory)
        self.cookies = CookieJar(session_factory, self.settings.COOKIE_MAX_AGE)
        self.api = ApiClient(self.settings, self.cookies, transport)

        # stores
        self.table = TableStore(self.storage)
        self.cart = CartStore(self.storage)
        self.favorites = FavoritesStore(self.storage)
        self.orders = OrdersStore(self.storage)
        self.loyalty = LoyaltyStore(self.storage)

        # services
        self.auth_state = AuthState()
        self.auth = AuthService(self.api, self.storage, self.cookies, self.auth_state, self.table, self.settings)
        self.tokens = TokenProvider(self.auth)
        self.menu = MenuService(self.api)
        self.order_api = OrderService(self.api)
        self.payments = PaymentService(self.api, self.storage, self.settings)
        self.workflow = OrderWorkflow(
            cart=self.cart, table=self.table, orders=self.orders, auth=self.auth, tokens=self.tokens,
            order_api=self.order_api, payments=self.payments, storage=self.storage, settings=self.settings,
        )
        self.device_id = device_id(self.storage)
        self.waiter = WaiterCallService(self.api, self.tokens, self.auth_state, self.device_id)
        self.cash = CashPaymentService(self.api, self.tokens, self.auth_state, self.device_id)

    def payment_verifier(self) -> PaymentVerifier:
        """A fresh verifier for one payment-return view; cancel it when the view goes away."""
        return PaymentVerifier(self.payments, self.cart, self.orders, self.storage, self.settings,
                               sleep=self._sleep)

    async def aclose(self) -> None:
        await self.api.aclose()

    async def __aenter__(self) -> "OrderingSession":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
