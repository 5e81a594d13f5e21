from typing import Optional

from circuit.commitment import CommitmentScheme
from circuit.witness import WitnessAssembler
from common.datastructures import MerklePath, Note, Proof, PublicInputs, WithdrawalRequest
from common.errors import ConfigurationError, UnsatisfiedWitnessError
from merkle import MerkleTree
from snark.backend import ProvingSession
from storage.manager import TreeManager
from utils import log_msg, short_hex


class Withdrawer:
    """
    取款者：用秘密对和认证路径生成成员关系证明。
    证明阶段只读取共享的证明密钥，多个取款者可以并发证明。
    """

    def __init__(self, withdrawer_id: str, session: ProvingSession, tree: Optional[TreeManager] = None):
        self.withdrawer_id = withdrawer_id
        self.session = session.prepare()
        self.tree = tree
        self.config = session.circuit.config
        self.scheme = CommitmentScheme(self.config)
        self.assembler = WitnessAssembler(self.session.r1cs, self.config)

    def prove(self, note: Note, path: MerklePath, root: int,
              nullifier_hash: Optional[int] = None) -> WithdrawalRequest:
        """
        对给定的 (路径, 根) 生成证明。公开值按给定值使用，与秘密不一致时
        证明生成失败（UnsatisfiedWitnessError）。

        :param nullifier_hash: 声称的作废哈希；为 None 时由秘密对计算。
        """
        if nullifier_hash is None:
            nullifier_hash = self.scheme.nullifier_hash(note)
        witness = self.assembler.assemble(note, path, root, nullifier_hash)
        proof: Proof = self.session.prove(witness)
        log_msg("INFO", "WITHDRAWER", self.withdrawer_id,
                f"生成取款证明：root={short_hex(root)} nullifier_hash={short_hex(nullifier_hash)}")
        return WithdrawalRequest(proof=proof, public=PublicInputs(root=root, nullifier_hash=nullifier_hash))

    def withdraw(self, note: Note, index: int) -> WithdrawalRequest:
        """
        从承诺树读取一致的 (根, 路径) 快照，先在电路外检查成员关系，再生成证明。
        """
        if self.tree is None:
            raise ConfigurationError("未关联承诺树，无法读取认证路径")
        root, path = self.tree.snapshot(index)
        leaf = self.scheme.commitment(note)
        if not MerkleTree.verify(leaf, path, root, self.tree.hasher):
            log_msg("WARN", "WITHDRAWER", self.withdrawer_id, f"叶子 #{index} 与秘密对的承诺不一致，拒绝证明")
            raise UnsatisfiedWitnessError(f"秘密对的承诺不在叶子 #{index} 处")
        return self.prove(note, path, root)
