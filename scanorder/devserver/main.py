from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scanorder.devserver.middleware import RequestIdMiddleware
from scanorder.devserver.state import DevState
from scanorder.devserver.routers import auth, menu, orders, payments, tables, waiter


def create_app(state: DevState | None = None) -> FastAPI:
    app = FastAPI(title="scanorder dev backend", version="0.3.0")
    app.state.dev = state or DevState()

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(tables.router)
    app.include_router(menu.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(waiter.router)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    return app


app = create_app()
# a table and menu to scan when running the dev backend by hand
app.state.dev.seed_demo()
