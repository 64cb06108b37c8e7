from __future__ import annotations

from typing import Any, Dict

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from src.draw.selector import select_winners
from src.vrf.proof import ProofError, derive_alpha, verify_proof


class AuditMismatch(Exception):
    """A stored draw does not reproduce."""


def verify_winner_record(giveaway_id: str, record: Dict[str, Any], public_key: RSAPublicKey) -> Dict[str, Any]:
    """
    Re-checks a stored draw from its own data: the seed belongs to this giveaway,
    the proof verifies under the oracle key, and the selector reproduces the winners.
    """
    try:
        seed = bytes.fromhex(record["seed"])
        output = bytes.fromhex(record["vrf_output"])
        proof = bytes.fromhex(record["vrf_proof"])
        participants = list(record["participants"])
        num_winners = int(record["num_winners"])
        winners_expected = list(record["winners"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuditMismatch(f"Winner record is incomplete: {e}")

    if seed != derive_alpha(giveaway_id):
        raise AuditMismatch("Seed is not bound to this giveaway")

    try:
        verify_proof(public_key, seed, output, proof)
    except ProofError as e:
        raise AuditMismatch(str(e))

    try:
        winners = select_winners(output, participants, num_winners)
    except ValueError as e:
        raise AuditMismatch(f"Selection cannot be re-run: {e}")

    if winners != winners_expected:
        raise AuditMismatch(f"Winner mismatch: record={winners_expected} recomputed={winners}")

    return {
        "ok": True,
        "seed": seed.hex(),
        "vrf_output": output.hex(),
        "winners": winners,
    }
