"""
Witness assembly against the compiled mixer relation (no keys needed).
"""
import pytest
from hypothesis import given, settings, strategies as st

from circuit.commitment import CommitmentScheme, nullifier_domain_tag
from circuit.relation import MixerCircuit
from circuit.witness import WitnessAssembler
from common.datastructures import MerklePath, Note
from common.errors import ConfigurationError, FieldElementError, UnsatisfiedWitnessError
from crypto import CURVE_ORDER
from gadgets.merkle import MerkleProofGadget
from gadgets.mimc import MiMCGadget
from merkle import MerkleTree
from snark.backend import Groth16Backend
from snark.r1cs import ConstraintSystem

field_elements = st.integers(min_value=0, max_value=CURVE_ORDER - 1)


def tree_with(note, scheme, config, index=1, others=(11, 22, 33)):
    leaves = list(others)
    leaves.insert(index, scheme.commitment(note))
    tree = MerkleTree(config.tree_depth, scheme.hasher, leaves[:config.capacity])
    return tree, index


@pytest.fixture
def note():
    return Note(nullifier=123456789, secret=987654321)


@pytest.fixture
def assembler(mixer_r1cs, small_config):
    return WitnessAssembler(mixer_r1cs, small_config)


class TestRelationShape:

    def test_public_inputs_are_root_then_nullifier_hash(self, mixer_r1cs):
        assert mixer_r1cs.public_names == ["root", "nullifier_hash"]
        assert mixer_r1cs.num_public_inputs == 2

    def test_depth_is_a_circuit_parameter(self, mixer_r1cs, config_factory):
        deeper = Groth16Backend().compile(MixerCircuit(config_factory(tree_depth=3)))
        assert deeper.digest() != mixer_r1cs.digest()
        assert deeper.num_constraints > mixer_r1cs.num_constraints

    def test_gadget_rejects_wrong_path_length(self, small_config):
        cs = ConstraintSystem(CURVE_ORDER)
        gadget = MerkleProofGadget(cs, MiMCGadget(cs, small_config.hash_params()), depth=2)
        leaf = cs.private_input("leaf")
        with pytest.raises(ConfigurationError):
            gadget.compute_root(leaf, [cs.private_input("s0")], [cs.private_input("d0")])
        with pytest.raises(ConfigurationError):
            gadget.compute_root(leaf, [cs.private_input("s1"), cs.private_input("s2")], [cs.private_input("d1")])


class TestHonestWitness:

    def test_satisfies_relation(self, assembler, mixer_r1cs, scheme, small_config, note):
        tree, index = tree_with(note, scheme, small_config)
        nh = scheme.nullifier_hash(note)
        witness = assembler.assemble(note, tree.path_for(index), tree.root(), nh)
        mixer_r1cs.check(witness.values)
        assert witness.public_inputs == [tree.root(), nh]

    def test_in_circuit_values_match_native(self, assembler, scheme, small_config, note):
        tree, index = tree_with(note, scheme, small_config, index=3)
        nh = scheme.nullifier_hash(note)
        witness = assembler.assemble(note, tree.path_for(index), tree.root(), nh)
        assert witness.value_of("commitment") == scheme.commitment(note)
        assert witness.value_of("nullifier_hash_computed") == nh
        assert witness.value_of("computed_root") == tree.root()

    @settings(max_examples=10, deadline=None)
    @given(nullifier=field_elements, secret=field_elements, index=st.integers(min_value=0, max_value=3))
    def test_any_note_at_any_index(self, mixer_r1cs, scheme, small_config, nullifier, secret, index):
        note = Note(nullifier=nullifier, secret=secret)
        tree, index = tree_with(note, scheme, small_config, index=index)
        witness = WitnessAssembler(mixer_r1cs, small_config).assemble(
            note, tree.path_for(index), tree.root(), scheme.nullifier_hash(note))
        assert mixer_r1cs.is_satisfied(witness.values)


class TestBadWitness:

    def test_wrong_root(self, assembler, mixer_r1cs, scheme, small_config, note):
        tree, index = tree_with(note, scheme, small_config)
        witness = assembler.assemble(note, tree.path_for(index), tree.root() + 1, scheme.nullifier_hash(note))
        with pytest.raises(UnsatisfiedWitnessError) as exc:
            mixer_r1cs.check(witness.values)
        assert exc.value.label == "merkle_root"

    def test_wrong_nullifier_hash(self, assembler, mixer_r1cs, scheme, small_config, note):
        tree, index = tree_with(note, scheme, small_config)
        witness = assembler.assemble(note, tree.path_for(index), tree.root(), scheme.commitment(note))
        with pytest.raises(UnsatisfiedWitnessError) as exc:
            mixer_r1cs.check(witness.values)
        assert exc.value.label == "nullifier_hash"

    def test_note_not_in_tree(self, assembler, mixer_r1cs, scheme, small_config, note):
        tree, index = tree_with(note, scheme, small_config)
        other = Note(nullifier=note.nullifier, secret=note.secret + 1)
        witness = assembler.assemble(other, tree.path_for(index), tree.root(), scheme.nullifier_hash(other))
        assert not mixer_r1cs.is_satisfied(witness.values)

    @pytest.mark.parametrize("level", [0, 1])
    def test_flipped_direction(self, assembler, mixer_r1cs, scheme, small_config, note, level):
        tree, index = tree_with(note, scheme, small_config)
        path = tree.path_for(index)
        directions = list(path.directions)
        directions[level] ^= 1
        flipped = MerklePath(siblings=list(path.siblings), directions=directions)
        witness = assembler.assemble(note, flipped, tree.root(), scheme.nullifier_hash(note))
        assert not mixer_r1cs.is_satisfied(witness.values)

    def test_non_boolean_direction_violates_circuit(self, assembler, mixer_r1cs, scheme, small_config, note):
        tree, index = tree_with(note, scheme, small_config)
        inputs = assembler.inputs_for(note, tree.path_for(index), tree.root(), scheme.nullifier_hash(note))
        inputs["direction_0"] = 2
        with pytest.raises(UnsatisfiedWitnessError) as exc:
            mixer_r1cs.check(mixer_r1cs.solve(inputs).values)
        assert exc.value.label == "merkle_direction_0"


class TestAssemblerValidation:

    def test_wrong_path_length(self, assembler, note):
        with pytest.raises(ConfigurationError):
            assembler.assemble(note, MerklePath(siblings=[0], directions=[0]), 0, 0)

    def test_out_of_range_sibling(self, assembler, note):
        path = MerklePath(siblings=[CURVE_ORDER, 0], directions=[0, 0])
        with pytest.raises(FieldElementError):
            assembler.assemble(note, path, 0, 0)

    def test_out_of_range_public_value(self, assembler, note):
        path = MerklePath(siblings=[0, 0], directions=[0, 0])
        with pytest.raises(FieldElementError):
            assembler.assemble(note, path, -1, 0)

    def test_out_of_range_secret(self, assembler):
        path = MerklePath(siblings=[0, 0], directions=[0, 0])
        with pytest.raises(FieldElementError):
            assembler.assemble(Note(nullifier=1, secret=CURVE_ORDER + 1), path, 0, 0)

    def test_non_boolean_direction(self, assembler, note):
        path = MerklePath(siblings=[0, 0], directions=[0, 2])
        with pytest.raises(FieldElementError):
            assembler.assemble(note, path, 0, 0)


class TestNullifierModes:

    def test_domain_separated_differs_from_commitment(self, scheme, small_config, note):
        assert scheme.nullifier_hash(note) != scheme.commitment(note)
        assert scheme.nullifier_hash(note) == scheme.hasher.hash(nullifier_domain_tag(small_config), note.nullifier)

    def test_legacy_equals_commitment(self, legacy_config, note):
        legacy = CommitmentScheme(legacy_config)
        assert legacy.nullifier_hash(note) == legacy.commitment(note)

    def test_legacy_relation_accepts_legacy_witness(self, legacy_config, scheme, note):
        r1cs = Groth16Backend().compile(MixerCircuit(legacy_config))
        legacy = CommitmentScheme(legacy_config)
        tree, index = tree_with(note, legacy, legacy_config)
        assembler = WitnessAssembler(r1cs, legacy_config)
        good = assembler.assemble(note, tree.path_for(index), tree.root(), legacy.nullifier_hash(note))
        assert r1cs.is_satisfied(good.values)
        # the domain-separated hash of the same note does not satisfy the legacy relation
        bad = assembler.assemble(note, tree.path_for(index), tree.root(), scheme.nullifier_hash(note))
        assert not r1cs.is_satisfied(bad.values)

    def test_nullifier_hash_is_deterministic_per_note(self, scheme, note):
        assert scheme.nullifier_hash(note) == scheme.nullifier_hash(Note(note.nullifier, note.secret))
        assert scheme.nullifier_hash(note) != scheme.nullifier_hash(Note(note.nullifier + 1, note.secret))
