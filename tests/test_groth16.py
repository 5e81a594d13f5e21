"""
Groth16 backend on the small MiMC pre-image relation.
"""
import pytest
from py_ecc.optimized_bn128 import FQ, FQ2, b2, field_modulus, is_inf, is_on_curve, multiply

from circuit.relation import MixerCircuit, PreimageCircuit
from common.datastructures import Proof
from common.errors import ConfigurationError, UnsatisfiedWitnessError
from crypto import CURVE_ORDER, G2_IDENTITY, g1_mul, g2_is_valid, g2_mul
from snark.backend import Groth16Backend, Lifecycle, ProvingSession
from snark.groth16 import Groth16
from utils import MiMCParams, mimc_hash

PREIMAGE = 0xC0FFEE


def fq2_sqrt(a):
    """Square root in FQ2 for p = 3 mod 4; None when a is not a square."""
    minus_one = -FQ2.one()
    a1 = a ** ((field_modulus - 3) // 4)
    alpha = a1 * a1 * a
    if alpha ** field_modulus * alpha == minus_one:
        return None
    x0 = a1 * a
    if alpha == minus_one:
        return FQ2([0, 1]) * x0
    return (FQ2.one() + alpha) ** ((field_modulus - 1) // 2) * x0


def twist_point_outside_subgroup():
    """An affine point on the G2 twist whose order is not r."""
    for x in range(1, 100):
        fx = FQ2([x, 0])
        rhs = fx ** 3 + b2
        y = fq2_sqrt(rhs)
        if y is not None and y * y == rhs:
            point = (fx, y, FQ2.one())
            if not is_inf(multiply(point, CURVE_ORDER)):
                return point
    raise AssertionError("no twist point found")


@pytest.fixture(scope="module")
def params(small_config):
    return small_config.hash_params()


@pytest.fixture(scope="module")
def session(params):
    return ProvingSession(PreimageCircuit(params)).prepare()


@pytest.fixture(scope="module")
def digest(params):
    return mimc_hash(params, PREIMAGE)


@pytest.fixture(scope="module")
def proof(session, digest):
    witness = session.r1cs.solve({"preimage": PREIMAGE, "hash": digest})
    return session.prove(witness)


class TestProveVerify:

    def test_valid_proof_verifies(self, session, proof, digest):
        assert session.verify(proof, [digest])

    def test_verification_is_idempotent(self, session, proof, digest):
        results = {session.verify(proof, [digest]) for _ in range(2)}
        assert results == {True}
        assert session.verify(proof, [digest + 1]) == session.verify(proof, [digest + 1])

    def test_wrong_public_input_rejected(self, session, proof, digest):
        assert not session.verify(proof, [digest + 1])

    def test_tampered_proof_rejected(self, session, proof, digest):
        swapped = Proof(a=proof.c, b=proof.b, c=proof.a)
        assert not session.verify(swapped, [digest])
        shifted = Proof(a=proof.a, b=proof.b, c=g1_mul(7))
        assert not session.verify(shifted, [digest])

    def test_off_curve_point_rejected(self, session, proof, digest):
        bogus = Proof(a=(FQ(1), FQ(1), FQ(1)), b=proof.b, c=proof.c)
        assert not session.verify(bogus, [digest])

    def test_g2_point_outside_subgroup_rejected(self, session, proof, digest):
        point = twist_point_outside_subgroup()
        assert is_on_curve(point, b2)
        assert not g2_is_valid(point)
        bogus = Proof(a=proof.a, b=point, c=proof.c)
        assert not session.verify(bogus, [digest])

    def test_g2_subgroup_members_are_valid(self):
        assert g2_is_valid(g2_mul(5))
        assert g2_is_valid(G2_IDENTITY)

    @pytest.mark.parametrize("value", [CURVE_ORDER, -1, True])
    def test_non_canonical_public_input_rejected(self, session, proof, value):
        assert not session.verify(proof, [value])

    def test_public_input_count_mismatch(self, session, proof, digest):
        with pytest.raises(ConfigurationError):
            session.verify(proof, [digest, 0])

    def test_proofs_are_randomised(self, session, proof, digest):
        witness = session.r1cs.solve({"preimage": PREIMAGE, "hash": digest})
        again = session.prove(witness)
        assert again.to_bytes() != proof.to_bytes()
        assert session.verify(again, [digest])

    def test_serialized_proof_still_verifies(self, session, proof, digest):
        assert session.verify(Proof.from_bytes(proof.to_bytes()), [digest])


class TestProverRefusals:

    def test_unsatisfied_witness_produces_no_proof(self, session, digest):
        witness = session.r1cs.solve({"preimage": PREIMAGE + 1, "hash": digest})
        with pytest.raises(UnsatisfiedWitnessError):
            session.prove(witness)

    def test_keys_bound_to_circuit_version(self, session, small_config):
        other = Groth16Backend().compile(MixerCircuit(small_config))
        witness = other.solve({name: 0 for name in other.inputs})
        with pytest.raises(ConfigurationError):
            Groth16.prove(other, session.proving_key, witness)

    def test_verifying_key_layout(self, session):
        vk = session.verifying_key
        assert vk.num_public_inputs == 1
        assert vk.circuit_digest == session.r1cs.digest()
        assert len(session.proving_key.h_query) == session.proving_key.domain_size - 1


class TestLifecycle:

    def test_state_transitions(self, params):
        s = ProvingSession(PreimageCircuit(params))
        assert s.state is Lifecycle.UNCOMPILED
        with pytest.raises(ConfigurationError):
            s.setup()
        with pytest.raises(ConfigurationError):
            s.prove(None)
        with pytest.raises(ConfigurationError):
            s.verify(None, [0])
        s.compile()
        assert s.state is Lifecycle.COMPILED
        with pytest.raises(ConfigurationError):
            s.compile()

    def test_prepare_is_resumable(self, session):
        assert session.prepare() is session
        assert session.state is Lifecycle.KEYS_GENERATED

    def test_backend_rejects_foreign_field(self):
        with pytest.raises(ConfigurationError):
            Groth16Backend().compile(PreimageCircuit(MiMCParams(modulus=103, rounds=2)))
