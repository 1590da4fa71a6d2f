"""HTTP tests: login/register status mapping and bearer/role enforcement through the FastAPI app."""

import asyncio
import os
import shutil
import tempfile
import unittest
from collections.abc import AsyncGenerator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.config import Settings
from app.core.database import get_db
from app.core.errors import ConfigurationError
from app.core.security import SigningConfig, TokenClaims, TokenIssuer
from app.main import create_app
from app.models import Base

SECRET = "api-test-signing-secret-0123456789abcdef"


class ApiTestCase(unittest.TestCase):
    """Fresh SQLite file database and app per test."""

    collapse_login_errors = False

    def setUp(self) -> None:
        self._tmpdir = tempfile.mkdtemp()
        path = os.path.join(self._tmpdir, "test.db")
        sync_engine = create_engine(f"sqlite:///{path}")
        Base.metadata.create_all(sync_engine)
        sync_engine.dispose()

        self.engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
        factory = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            async with factory() as session:
                yield session

        settings = Settings(
            JWT_SECRET=SECRET,
            DATABASE_URL=f"sqlite+aiosqlite:///{path}",
            BCRYPT_ROUNDS=4,
            AUTH_COLLAPSE_LOGIN_ERRORS=self.collapse_login_errors,
        )
        self.app = create_app(settings)
        self.app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        asyncio.run(self.engine.dispose())
        shutil.rmtree(self._tmpdir, ignore_errors=True)

    def register(self, username: str, password: str = "Secret123", **extra: str):
        return self.client.post("/api/v1/users", json={"username": username, "password": password, **extra})

    def login(self, username: str, password: str | None = "Secret123"):
        body = {"username": username}
        if password is not None:
            body["password"] = password
        return self.client.post("/api/v1/users/login", json=body)

    def token_for(self, username: str, role: str | None = None) -> str:
        extra = {"role": role} if role else {}
        self.assertEqual(self.register(username, **extra).status_code, 201)
        return self.login(username).json()["token"]

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


class TestRegisterAndLogin(ApiTestCase):
    def test_scenario(self) -> None:
        created = self.register("alice", name="Alice")
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["username"], "alice")
        self.assertEqual(created.json()["name"], "Alice")
        self.assertNotIn("password_hash", created.json())

        ok = self.login("ALICE  ")
        self.assertEqual(ok.status_code, 200)
        body = ok.json()
        self.assertEqual(body["message"], "login successful")
        self.assertEqual(body["user"]["id"], created.json()["id"])
        claims = self.app.state.token_issuer.decode(body["token"]).claims
        self.assertEqual(claims.role, "User")

        wrong = self.login("alice", "wrong")
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json()["token"], "")
        self.assertIsNone(wrong.json()["user"])

        unknown = self.login("bob", "x")
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(unknown.json()["message"], "username not found")

    def test_missing_password_is_401_with_message(self) -> None:
        self.register("alice")
        response = self.login("alice", None)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "password required")

    def test_malformed_body_is_400(self) -> None:
        response = self.client.post("/api/v1/users/login", json={"password": "Secret123"})
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["errors"])

    def test_duplicate_username_is_400(self) -> None:
        self.assertEqual(self.register("alice").status_code, 201)
        response = self.register(" Alice ")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"], ["username already exists"])

    def test_blank_username_is_400(self) -> None:
        response = self.register("   ")
        self.assertEqual(response.status_code, 400)

    def test_weak_password_is_400_with_reasons(self) -> None:
        response = self.register("alice", password="weak")
        self.assertEqual(response.status_code, 400)
        self.assertGreaterEqual(len(response.json()["errors"]), 2)


class TestCollapsedLoginErrors(ApiTestCase):
    collapse_login_errors = True

    def test_unknown_user_reports_invalid_credentials(self) -> None:
        response = self.login("nobody", "Secret123")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "invalid credentials")


class TestAuthorization(ApiTestCase):
    def test_user_listing_requires_admin(self) -> None:
        self.assertEqual(self.client.get("/api/v1/users").status_code, 401)
        self.assertEqual(
            self.client.get("/api/v1/users", headers=self.bearer("garbage")).status_code, 401
        )

        user_token = self.token_for("alice")
        self.assertEqual(
            self.client.get("/api/v1/users", headers=self.bearer(user_token)).status_code, 403
        )

        admin_token = self.token_for("root", role="Admin")
        response = self.client.get("/api/v1/users", headers=self.bearer(admin_token))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([u["username"] for u in response.json()["users"]], ["alice", "root"])

    def test_get_user_by_id(self) -> None:
        admin_token = self.token_for("root", role="Admin")
        created = self.register("alice").json()
        found = self.client.get(f"/api/v1/users/{created['id']}", headers=self.bearer(admin_token))
        self.assertEqual(found.status_code, 200)
        self.assertEqual(found.json()["username"], "alice")
        missing = self.client.get("/api/v1/users/does-not-exist", headers=self.bearer(admin_token))
        self.assertEqual(missing.status_code, 404)

    def test_token_signed_with_other_secret_is_rejected(self) -> None:
        forged = TokenIssuer(SigningConfig(secret="not-the-server-secret-0123456789")).issue(
            TokenClaims(subject_id="1", username="mallory", role="Admin")
        )
        response = self.client.get("/api/v1/users", headers=self.bearer(forged))
        self.assertEqual(response.status_code, 401)


class TestCatalogEndpoints(ApiTestCase):
    def test_admin_writes_and_user_purchase(self) -> None:
        admin = self.bearer(self.token_for("root", role="Admin"))
        user = self.bearer(self.token_for("alice"))

        self.assertEqual(
            self.client.post("/api/v1/categories", json={"name": "Keyboards"}, headers=user).status_code,
            403,
        )
        category = self.client.post("/api/v1/categories", json={"name": "Keyboards"}, headers=admin)
        self.assertEqual(category.status_code, 201)

        product_body = {
            "name": "Board",
            "description": "Mechanical",
            "price": "49.90",
            "stock": 5,
            "category_id": category.json()["id"],
        }
        product = self.client.post("/api/v1/products", json=product_body, headers=admin)
        self.assertEqual(product.status_code, 201)
        self.assertEqual(product.json()["img_url"], "https://placehold.co/300x300")

        listing = self.client.get("/api/v1/products")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.json()), 1)

        self.assertEqual(self.client.patch("/api/v1/products/buy/Board/2").status_code, 401)
        bought = self.client.patch("/api/v1/products/buy/Board/2", headers=user)
        self.assertEqual(bought.status_code, 200)
        self.assertEqual(bought.json()["remaining_stock"], 3)
        self.assertEqual(
            self.client.patch("/api/v1/products/buy/Board/9", headers=user).status_code, 400
        )

        page = self.client.get("/api/v1/products/paged", params={"page_number": 1, "page_size": 5})
        self.assertEqual(page.status_code, 200)
        self.assertEqual(page.json()["total_pages"], 1)
        self.assertEqual(
            self.client.get("/api/v1/products/paged", params={"page_number": 2}).status_code, 404
        )
        self.assertEqual(
            self.client.get("/api/v1/products/paged", params={"page_size": 0}).status_code, 400
        )

        product_id = product.json()["id"]
        self.assertEqual(
            self.client.delete(f"/api/v1/products/{product_id}", headers=user).status_code, 403
        )
        self.assertEqual(
            self.client.delete(f"/api/v1/products/{product_id}", headers=admin).status_code, 204
        )
        self.assertEqual(self.client.get(f"/api/v1/products/{product_id}").status_code, 404)


class TestHealthAndStartup(ApiTestCase):
    def test_health_reports_database(self) -> None:
        response = self.client.get("/api/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["database"], "connected")

    def test_missing_secret_fails_at_startup(self) -> None:
        with self.assertRaises(ConfigurationError):
            create_app(Settings(JWT_SECRET=None))
