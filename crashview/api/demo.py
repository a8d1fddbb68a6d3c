"""
Demo application with crashview installed.

Each endpoint fails in a different way so every report category can be
inspected in a browser (see `crashview serve`).

Copyright (c) 2025 Graziano Labs Corp.
"""

import sqlite3

from fastapi import FastAPI

from .handlers import install


class PaymentAuthorizationError(Exception):
    pass


def create_app(debug: bool = True) -> FastAPI:
    app = FastAPI(title="crashview demo", version="0.1")

    @app.get("/users")
    async def list_users():
        return {"users": ["ada", "grace"]}

    @app.get("/users/{user_id}")
    async def get_user(user_id: int):
        users = {1: "ada", 2: "grace"}
        return {"user": users[user_id]}

    @app.get("/boom")
    async def boom(api_key: str = "sk-demo-123456"):
        settings = {"retries": 3}
        return {"timeout": settings["timeout"]}

    @app.get("/db")
    async def database():
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("SELECT * FROM missing_table")
        finally:
            conn.close()

    @app.get("/pay")
    async def pay(amount: float = 9.99):
        raise PaymentAuthorizationError(f"Card declined for amount {amount}")

    @app.get("/syntax")
    async def syntax():
        compile("def broken(:\n    pass\n", "broken.py", "exec")

    install(app, debug=debug)
    return app
