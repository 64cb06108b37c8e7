import pytest

from src.draw.audit import AuditMismatch, verify_winner_record
from src.draw.commitment import build_winner_record
from src.draw.selector import select_winners

PARTICIPANTS = ["A", "B", "C", "D"]


def _record(oracle, giveaway_id="g-1", num_winners=2):
    result = oracle.answer(giveaway_id)
    winners = select_winners(result.output, PARTICIPANTS, num_winners)
    return build_winner_record(result, PARTICIPANTS, winners, num_winners)


def test_honest_record_verifies(oracle):
    record = _record(oracle)
    result = verify_winner_record("g-1", record, oracle.public_key)
    assert result["ok"] is True
    assert result["winners"] == record["winners"]


def test_swapped_winner_is_detected(oracle):
    record = _record(oracle)
    loser = next(p for p in PARTICIPANTS if p not in record["winners"])
    record["winners"][0] = loser
    with pytest.raises(AuditMismatch, match="Winner mismatch"):
        verify_winner_record("g-1", record, oracle.public_key)


def test_reordered_participants_are_detected(oracle):
    record = _record(oracle, num_winners=1)
    original = record["winners"]
    for shift in range(1, len(PARTICIPANTS)):
        record["participants"] = PARTICIPANTS[shift:] + PARTICIPANTS[:shift]
        if select_winners(bytes.fromhex(record["vrf_output"]), record["participants"], 1) != original:
            break
    with pytest.raises(AuditMismatch):
        verify_winner_record("g-1", record, oracle.public_key)


def test_record_of_other_giveaway_is_rejected(oracle):
    record = _record(oracle, giveaway_id="g-2")
    with pytest.raises(AuditMismatch, match="not bound"):
        verify_winner_record("g-1", record, oracle.public_key)


def test_incomplete_record_is_rejected(oracle):
    record = _record(oracle)
    del record["vrf_proof"]
    with pytest.raises(AuditMismatch, match="incomplete"):
        verify_winner_record("g-1", record, oracle.public_key)
