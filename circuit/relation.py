"""
关系电路定义

MixerCircuit：证明者知道某个秘密对 (nullifier, secret)，满足
    1. 由秘密对算出的作废哈希等于公开的 nullifier_hash；
    2. 承诺 H(nullifier, secret) 是默克尔树中某个叶子，树根等于公开的 root。
公开输入按顺序为 [root, nullifier_hash]，其余变量全部私有。

PreimageCircuit：证明者知道 x，使得 MiMC(x) 等于公开的 hash。
"""
from config import MixerConfig
from circuit.commitment import CommitmentGadget
from gadgets.merkle import MerkleProofGadget
from gadgets.mimc import MiMCGadget
from snark.r1cs import ConstraintSystem
from utils import MiMCParams

PUBLIC_INPUTS = ("root", "nullifier_hash")


def path_input_names(depth: int):
    """认证路径的私有输入名：(兄弟节点名列表, 方向位名列表)。"""
    return [f"path_{i}" for i in range(depth)], [f"direction_{i}" for i in range(depth)]


class MixerCircuit:
    """混币取款关系；树深度是电路参数。"""

    def __init__(self, config: MixerConfig):
        self.config = config
        self.modulus = config.field_modulus
        self.depth = config.tree_depth

    def define(self, cs: ConstraintSystem) -> None:
        # 公开输入的声明顺序即验证时的公开输入顺序
        root = cs.public_input("root")
        nullifier_hash = cs.public_input("nullifier_hash")

        nullifier = cs.private_input("nullifier")
        secret = cs.private_input("secret")
        sibling_names, direction_names = path_input_names(self.depth)
        siblings = [cs.private_input(n) for n in sibling_names]
        directions = [cs.private_input(n) for n in direction_names]

        scheme = CommitmentGadget(cs, self.config)

        computed = scheme.nullifier_hash(nullifier, secret)
        computed = cs.name(computed, "nullifier_hash_computed")
        cs.assert_equal(computed, nullifier_hash, "nullifier_hash")

        leaf = cs.name(scheme.commitment(nullifier, secret), "commitment")

        merkle = MerkleProofGadget(cs, scheme.hasher, self.depth)
        merkle.verify(leaf, siblings, directions, root)

    def __repr__(self):
        mode = "legacy" if self.config.legacy_nullifier_hash else "domain"
        return f"MixerCircuit(depth={self.depth}, mimc_rounds={self.config.mimc_rounds}, nullifier={mode})"


class PreimageCircuit:
    """MiMC 原像知识证明：私有 preimage，公开 hash。"""

    def __init__(self, params: MiMCParams):
        self.params = params
        self.modulus = params.modulus

    def define(self, cs: ConstraintSystem) -> None:
        digest = cs.public_input("hash")
        preimage = cs.private_input("preimage")
        computed = MiMCGadget(cs, self.params).hash(preimage)
        cs.assert_equal(computed, digest, "preimage_hash")
