from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from config import (
    VRF_ORACLE_URL, VRF_ORACLE_API_KEY, VRF_PUBLIC_KEY,
    VRF_TIMEOUT_SECONDS, VRF_POLL_INTERVAL, VRF_HTTP_TIMEOUT,
)
from src.draw.errors import OracleTimeout, OracleUnavailable
from src.vrf.proof import ProofError, derive_alpha, load_public_key, verify_proof


@dataclass(frozen=True)
class OracleResult:
    """A verified randomness answer plus the ledger references of its request/response."""
    giveaway_id: str
    seed: bytes
    output: bytes
    proof: bytes
    request_tx_id: str
    response_tx_id: str


class RandomnessOracleClient:
    """
    Client of the ledger VRF oracle.

    POST /v1/requests          {"seed": hex}  -> {"request_tx_id": ...}
    GET  /v1/requests/{tx_id}                 -> {"status": "pending" | "fulfilled" | "failed", ...}

    Fulfilled answers are verified against the pinned public key before they are returned.
    """

    def __init__(
            self,
            base_url: str = VRF_ORACLE_URL,
            public_key: str | bytes | RSAPublicKey = VRF_PUBLIC_KEY,
            api_key: str = VRF_ORACLE_API_KEY,
            *,
            timeout_s: float = VRF_TIMEOUT_SECONDS,
            poll_interval_s: float = VRF_POLL_INTERVAL,
            http_timeout_s: float = VRF_HTTP_TIMEOUT,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self._public_key_source = public_key
        self._public_key: RSAPublicKey | None = public_key if isinstance(public_key, RSAPublicKey) else None
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.http_timeout_s = http_timeout_s
        self.transport = transport
        self.log = logging.getLogger(self.__class__.__name__)

    @property
    def public_key(self) -> RSAPublicKey:
        if self._public_key is None:
            if not self._public_key_source:
                raise OracleUnavailable("VRF public key is not configured")
            try:
                self._public_key = load_public_key(self._public_key_source)
            except (ValueError, UnsupportedAlgorithm) as e:
                raise OracleUnavailable(f"VRF public key is invalid: {e}")
        return self._public_key

    async def request_randomness(self, giveaway_id: str) -> OracleResult:
        if not self.base_url:
            raise OracleUnavailable("VRF oracle URL is not configured", giveaway_id=giveaway_id)

        alpha = derive_alpha(giveaway_id)
        try:
            return await asyncio.wait_for(self._request_and_wait(giveaway_id, alpha), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            self.log.warning("Oracle timed out after %.1fs for giveaway %s", self.timeout_s, giveaway_id)
            raise OracleTimeout(giveaway_id=giveaway_id)

    async def _request_and_wait(self, giveaway_id: str, alpha: bytes) -> OracleResult:
        headers = {"X-API-Key": self.api_key} if self.api_key else {}
        async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.http_timeout_s,
                headers=headers,
                transport=self.transport,
        ) as client:
            submitted = await self._call(client, "POST", "/v1/requests", json={"seed": alpha.hex()})
            request_tx_id = submitted.get("request_tx_id")
            if not isinstance(request_tx_id, str) or not request_tx_id:
                raise OracleUnavailable("Oracle did not return a request transaction id", giveaway_id=giveaway_id)
            self.log.info("VRF request submitted for giveaway %s: %s", giveaway_id, request_tx_id)

            while True:
                data = await self._call(client, "GET", f"/v1/requests/{request_tx_id}")
                status = data.get("status")
                if status == "fulfilled":
                    return self._verify(giveaway_id, alpha, request_tx_id, data)
                if status == "failed":
                    raise OracleUnavailable(
                        f"Oracle failed request {request_tx_id}: {data.get('error') or 'unknown error'}",
                        giveaway_id=giveaway_id,
                    )
                if status != "pending":
                    raise OracleUnavailable(f"Unexpected oracle status {status!r}", giveaway_id=giveaway_id)
                await asyncio.sleep(self.poll_interval_s)

    async def _call(self, client: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            resp = await client.request(method, path, **kwargs)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            self.log.warning("Oracle %s %s failed: %s", method, path, e)
            raise OracleUnavailable(f"Oracle request failed: {e}") from e
        except ValueError as e:
            raise OracleUnavailable("Oracle returned invalid JSON") from e
        if not isinstance(data, dict):
            raise OracleUnavailable("Oracle returned an unexpected payload")
        return data

    def _verify(self, giveaway_id: str, alpha: bytes, request_tx_id: str, data: Dict[str, Any]) -> OracleResult:
        response_tx_id = data.get("response_tx_id")
        if not isinstance(response_tx_id, str) or not response_tx_id:
            raise OracleUnavailable("Oracle did not return a response transaction id", giveaway_id=giveaway_id)

        try:
            seed = bytes.fromhex(data["seed"])
            output = bytes.fromhex(data["output"])
            proof = bytes.fromhex(data["proof"])
        except (KeyError, TypeError, ValueError) as e:
            raise OracleUnavailable(f"Malformed oracle fulfilment: {e}", giveaway_id=giveaway_id) from e

        # the seed echo must be ours, otherwise the answer belongs to another draw
        if seed != alpha:
            raise OracleUnavailable("Oracle answered for a different seed", giveaway_id=giveaway_id)

        try:
            verified = verify_proof(self.public_key, alpha, output, proof)
        except ProofError as e:
            self.log.error("Rejected oracle proof for giveaway %s (%s): %s", giveaway_id, response_tx_id, e)
            raise OracleUnavailable(f"Unverified VRF proof: {e}", giveaway_id=giveaway_id) from e

        self.log.info("VRF response verified for giveaway %s: %s", giveaway_id, response_tx_id)
        return OracleResult(
            giveaway_id=giveaway_id,
            seed=verified.alpha,
            output=verified.output,
            proof=verified.proof,
            request_tx_id=request_tx_id,
            response_tx_id=response_tx_id,
        )
