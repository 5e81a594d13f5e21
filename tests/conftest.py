"""
Shared fixtures.

Groth16 over BN254 in pure Python is slow, so the suite runs on a reduced
MiMC (few rounds) and shallow trees, and every expensive setup is shared
through session/module-scoped fixtures.
"""
import pytest

from circuit.commitment import CommitmentScheme
from circuit.relation import MixerCircuit
from config import MixerConfig
from snark.backend import Groth16Backend
from utils import MiMCHasher, init_logging


SMALL_ROUNDS = 4
SMALL_DEPTH = 2


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    init_logging(log_file=None, level="WARNING", console=False)


def make_config(**overrides) -> MixerConfig:
    params = dict(tree_depth=SMALL_DEPTH, mimc_rounds=SMALL_ROUNDS, log_file=None, log_level="WARNING")
    params.update(overrides)
    return MixerConfig(**params)


@pytest.fixture(scope="session")
def small_config() -> MixerConfig:
    return make_config()


@pytest.fixture(scope="session")
def legacy_config() -> MixerConfig:
    return make_config(legacy_nullifier_hash=True)


@pytest.fixture(scope="session")
def hasher(small_config) -> MiMCHasher:
    return MiMCHasher(small_config.hash_params())


@pytest.fixture(scope="session")
def scheme(small_config) -> CommitmentScheme:
    return CommitmentScheme(small_config)


@pytest.fixture(scope="session")
def mixer_r1cs(small_config):
    """Compiled relation only (no keys): cheap, used for witness-level checks."""
    return Groth16Backend().compile(MixerCircuit(small_config))


@pytest.fixture(scope="session")
def config_factory():
    return make_config
