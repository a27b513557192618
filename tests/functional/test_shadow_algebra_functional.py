"""Functional tests for the plaintext-shadow ciphertext algebra and its ACL."""

from __future__ import annotations

import pytest

from encsurvey.db.base import build_engine, get_sessionmaker, init_schema, session_scope
from encsurvey.logic.addresses import ZERO_HANDLE
from encsurvey.logic.errors import AuthorizationError, InvalidInputError, InvalidProofError
from encsurvey.logic.shadow_algebra import ShadowAlgebra, input_proof
from encsurvey.models.ciphertext import CiphertextRecord

from survey_helpers import ALICE, BOB, CONTRACT

SECRET = "algebra-test-secret-key"


@pytest.fixture()
def factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    init_schema(engine)
    yield get_sessionmaker(engine)
    engine.dispose()


def _algebra(session) -> ShadowAlgebra:
    return ShadowAlgebra(session, CONTRACT, SECRET)


def _plain(session, handle: str) -> int:
    return int(session.get(CiphertextRecord, handle).value)


def test_arithmetic_wraps_at_32_bits(factory):
    with session_scope(factory) as session:
        fhe = _algebra(session)
        big = fhe.as_encrypted(2**32 - 1)
        assert _plain(session, fhe.add(big, 2)) == 1
        assert _plain(session, fhe.add(ZERO_HANDLE, 7)) == 7


def test_comparisons_and_select(factory):
    with session_scope(factory) as session:
        fhe = _algebra(session)
        three = fhe.as_encrypted(3)
        assert _plain(session, fhe.eq(three, 3)) == 1
        assert _plain(session, fhe.eq(three, 4)) == 0
        assert _plain(session, fhe.gt(three, 0)) == 1
        assert _plain(session, fhe.bit_and(three, 0b10)) == 2
        assert _plain(session, fhe.select(fhe.eq(three, 3), 1, 0)) == 1
        assert _plain(session, fhe.select(fhe.eq(three, 9), 1, 0)) == 0


def test_every_operation_returns_a_fresh_handle(factory):
    with session_scope(factory) as session:
        fhe = _algebra(session)
        a = fhe.as_encrypted(1)
        b = fhe.add(a, 0)
        c = fhe.add(a, 0)
        assert len({a, b, c}) == 3
        assert all(h.startswith("0x") and len(h) == 66 for h in (a, b, c))


def test_handles_from_an_earlier_call_need_a_contract_grant(factory):
    with session_scope(factory) as session:
        fhe = _algebra(session)
        kept = fhe.as_encrypted(5)
        fhe.allow_this(kept)
        dropped = fhe.as_encrypted(6)

    with session_scope(factory) as session:
        fhe = _algebra(session)
        assert _plain(session, fhe.add(kept, 1)) == 6
        with pytest.raises(AuthorizationError):
            fhe.add(dropped, 1)
        with pytest.raises(AuthorizationError):
            fhe.allow(dropped, ALICE)


def test_grants_are_per_handle(factory):
    with session_scope(factory) as session:
        fhe = _algebra(session)
        h = fhe.as_encrypted(1)
        fhe.allow(h, ALICE)
        derived = fhe.add(h, 1)
        assert fhe.is_allowed(h, ALICE)
        assert not fhe.is_allowed(h, BOB)
        assert not fhe.is_allowed(derived, ALICE)
        # repeated grants are idempotent
        fhe.allow(h, ALICE.upper().replace("0X", "0x"))
        assert fhe.is_allowed(h, ALICE)


def test_zero_handle_cannot_be_granted(factory):
    with session_scope(factory) as session:
        with pytest.raises(InvalidInputError) as exc:
            _algebra(session).allow(ZERO_HANDLE, ALICE)
    assert exc.value.code == "UNINITIALIZED_HANDLE"


def test_external_input_is_bound_to_contract_and_user(factory):
    with session_scope(factory) as session:
        handle, proof = _algebra(session).encrypt_input(ALICE, 4)

    with session_scope(factory) as session:
        fhe = _algebra(session)
        # raw external ciphertexts are not usable until imported
        with pytest.raises(AuthorizationError):
            fhe.add(handle, 1)
        imported = fhe.from_external(handle, proof, ALICE)
        assert imported != handle
        assert _plain(session, fhe.eq(imported, 4)) == 1

    with session_scope(factory) as session:
        fhe = _algebra(session)
        with pytest.raises(InvalidProofError):
            fhe.from_external(handle, proof, BOB)
        with pytest.raises(InvalidProofError):
            fhe.from_external(handle, "0x" + "0" * 64, ALICE)

    other = "0x9999999999999999999999999999999999999999"
    with session_scope(factory) as session:
        foreign = ShadowAlgebra(session, other, SECRET)
        with pytest.raises(InvalidProofError):
            foreign.from_external(handle, proof, ALICE)


def test_proof_matches_the_published_helper(factory):
    with session_scope(factory) as session:
        handle, proof = _algebra(session).encrypt_input(ALICE, 1)
    assert proof == input_proof(SECRET, handle, CONTRACT, ALICE)


@pytest.mark.parametrize("value", [-1, 2**32])
def test_inputs_must_fit_in_32_bits(factory, value):
    with session_scope(factory) as session:
        with pytest.raises(InvalidInputError) as exc:
            _algebra(session).encrypt_input(ALICE, value)
    assert exc.value.code == "INPUT_OUT_OF_RANGE"


def test_malformed_handles_are_rejected(factory):
    with session_scope(factory) as session:
        fhe = _algebra(session)
        with pytest.raises(InvalidInputError) as exc:
            fhe.add("0x1234", 1)
        assert exc.value.code == "INVALID_HANDLE"
        with pytest.raises(InvalidInputError) as exc:
            fhe.add("0x" + "ab" * 32, 1)
        assert exc.value.code == "UNKNOWN_HANDLE"
