"""Store fixtures: external service stubs, auth tokens and a seeded catalog."""

import uuid

import pytest
import pytest_asyncio
from jose import jwt

from libs.auth.dependencies import settings as auth_settings
from services.store_service.app.main import app
from services.store_service.checkout import SubmissionGuard, get_submission_guard
from services.store_service.moneroo_client import get_moneroo_client
from services.store_service.notifications import get_notifier
from tests.factories import seed_product
from tests.stubs import StubGateway, StubNotifier


def make_token(user_id: str, role: str = "authenticated", app_role: str = None) -> str:
    """Sign a Supabase-style HS256 token the auth dependencies accept."""
    claims = {"sub": user_id, "role": role, "email": f"{user_id}@example.com"}
    if app_role:
        claims["app_metadata"] = {"role": app_role}
    return jwt.encode(claims, auth_settings.SUPABASE_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def session_id() -> str:
    return f"sess-{uuid.uuid4().hex}"


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def notifier() -> StubNotifier:
    return StubNotifier()


@pytest.fixture
def guard() -> SubmissionGuard:
    return SubmissionGuard()


@pytest_asyncio.fixture
async def store_client(client, gateway, notifier, guard):
    """
    App client with Moneroo, Twilio and the submission guard swapped for test doubles.
    """
    app.dependency_overrides[get_moneroo_client] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_submission_guard] = lambda: guard
    yield client


@pytest.fixture
def buyer_headers() -> dict:
    return {"Authorization": f"Bearer {make_token('buyer-1')}"}


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": f"Bearer {make_token('admin-1', app_role='admin')}"}


@pytest_asyncio.fixture
async def wig(db_session):
    """
    Body wave wig in two colors.

    Noir (default): 16" 20 000 stock 3, 18" 25 000 stock 2.
    Blond: 18" 30 000 stock 0, 20" 35 000 stock 4.
    """
    return await seed_product(
        db_session,
        [
            {
                "name": "Noir",
                "hex": "#000000",
                "is_default": True,
                "images": ["https://cdn.example.com/noir-1.jpg"],
                "variants": [
                    {"length": 16, "price": 20000, "stock_count": 3},
                    {"length": 18, "price": 25000, "stock_count": 2},
                ],
            },
            {
                "name": "Blond",
                "hex": "#E6C07B",
                "images": ["https://cdn.example.com/blond-1.jpg"],
                "variants": [
                    {"length": 18, "price": 30000, "stock_count": 0},
                    {"length": 20, "price": 35000, "stock_count": 4},
                ],
            },
        ],
        name="Perruque Body Wave",
    )
