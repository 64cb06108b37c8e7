import os

# must run before `config` is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["AUTH_AUDIENCE"] = "authenticated"
os.environ["VRF_ORACLE_URL"] = "http://oracle.test"

import base64
import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.draw.service import WinnerSelectionService
from src.vrf.oracle import OracleResult
from src.vrf.proof import derive_alpha, output_from_proof, proof_message
from src.webapp import models  # noqa: F401
from src.webapp.database import init_db, get_db
from src.webapp.models import Giveaway, GiveawayStatus, Participant

CREATOR = "creator-1"
T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_token(sub: str, *, secret: str = "test-secret", expires_in: int = 3600, aud="authenticated", **extra) -> str:
    def b64(data: dict) -> str:
        return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()

    header = b64({"alg": "HS256", "typ": "JWT"})
    claims = {"sub": sub, "exp": int(time.time()) + expires_in, **extra}
    if aud is not None:
        claims["aud"] = aud
    payload = b64(claims)
    sig = hmac.new(secret.encode(), f"{header}.{payload}".encode(), hashlib.sha256).digest()
    return f"{header}.{payload}.{base64.urlsafe_b64encode(sig).rstrip(b'=').decode()}"


def vrf_sign(key: rsa.RSAPrivateKey, alpha: bytes) -> bytes:
    return key.sign(proof_message(alpha), padding.PKCS1v15(), hashes.SHA256())


def auth_headers(sub: str = CREATOR) -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}


class FakeOracle:
    """Signs like the real oracle does, without the network."""

    def __init__(self, key: rsa.RSAPrivateKey):
        self.key = key
        self.public_key = key.public_key()
        self.calls = 0
        self.fail_with: Exception | None = None
        self.before_return = None

    def answer(self, giveaway_id: str, n: int = 1) -> OracleResult:
        alpha = derive_alpha(giveaway_id)
        proof = vrf_sign(self.key, alpha)
        return OracleResult(
            giveaway_id=giveaway_id,
            seed=alpha,
            output=output_from_proof(proof),
            proof=proof,
            request_tx_id=f"req-{giveaway_id}-{n}",
            response_tx_id=f"resp-{giveaway_id}-{n}",
        )

    async def request_randomness(self, giveaway_id: str) -> OracleResult:
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        if self.before_return is not None:
            await self.before_return(giveaway_id)
        return self.answer(giveaway_id, self.calls)


@pytest.fixture(scope="session")
def vrf_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def oracle(vrf_key) -> FakeOracle:
    return FakeOracle(vrf_key)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
def service(session_factory, oracle) -> WinnerSelectionService:
    return WinnerSelectionService(session_factory, oracle, commit_attempts=3, commit_delay_s=0)


async def seed_giveaway(
        session_factory,
        *,
        status: GiveawayStatus = GiveawayStatus.ended,
        participants: tuple = (),
        num_winners: int = 1,
        creator_id: str = CREATOR,
        end_time: datetime | None = None,
) -> str:
    async with session_factory() as db:
        giveaway = Giveaway(
            creator_id=creator_id,
            title="Launch giveaway",
            description="Three hoodies",
            prize_details="Hoodie",
            start_time=T0,
            end_time=end_time or T0 + timedelta(days=7),
            num_winners=num_winners,
            status=status,
        )
        db.add(giveaway)
        await db.flush()
        for i, ident in enumerate(participants):
            db.add(Participant(
                giveaway_id=giveaway.id,
                participant_identifier=ident,
                created_at=T0 + timedelta(minutes=i),
            ))
        await db.commit()
        return giveaway.id


async def load_giveaway(session_factory, giveaway_id: str) -> Giveaway:
    async with session_factory() as db:
        return await db.get(Giveaway, giveaway_id)


@pytest_asyncio.fixture
async def client(session_factory, service):
    from src.webapp.main import app
    from src.webapp.routes.draw import get_selection_service

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_selection_service] = lambda: service
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
