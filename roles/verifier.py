from typing import Optional, Sequence, Union

from common.datastructures import Proof, PublicInputs, VerifyingKey, WithdrawalOutcome, WithdrawalRequest
from common.errors import DoubleSpendError
from snark.backend import Groth16Backend, ProvingBackend
from storage.manager import TreeManager
from storage.nullifiers import NullifierRegistry
from utils import log_msg, short_hex


class Verifier:
    """
    验证者：verify 只依赖 (证明, 验证密钥, 公开输入)，无状态、可重复调用。
    process_withdrawal 在此之外做记账：根是否已知、作废哈希是否已花费。
    """

    def __init__(self, verifier_id: str, vk: VerifyingKey, tree: Optional[TreeManager] = None,
                 registry: Optional[NullifierRegistry] = None, backend: Optional[ProvingBackend] = None):
        self.verifier_id = verifier_id
        self.vk = vk
        self.tree = tree
        self.registry = registry if registry is not None else NullifierRegistry()
        self.backend = backend or Groth16Backend()

    def verify(self, proof: Proof, public: Union[PublicInputs, Sequence[int]]) -> bool:
        inputs = public.as_list() if isinstance(public, PublicInputs) else list(public)
        return self.backend.verify(proof, self.vk, inputs)

    def process_withdrawal(self, request: WithdrawalRequest) -> WithdrawalOutcome:
        public = request.public
        if self.tree is not None and not self.tree.is_known_root(public.root):
            log_msg("WARN", "VERIFIER", self.verifier_id, f"未知的默克尔根 {short_hex(public.root)}")
            return WithdrawalOutcome.UNKNOWN_ROOT

        if self.registry.is_spent(public.nullifier_hash):
            log_msg("WARN", "VERIFIER", self.verifier_id, f"作废哈希 {short_hex(public.nullifier_hash)} 已花费")
            return WithdrawalOutcome.DOUBLE_SPEND

        if not self.verify(request.proof, public):
            log_msg("WARN", "VERIFIER", self.verifier_id, "证明未通过验证")
            return WithdrawalOutcome.REJECTED_PROOF

        # 验证通过后再原子地标记；并发请求中只有一个能成功
        try:
            self.registry.mark_spent(public.nullifier_hash, public.root)
        except DoubleSpendError:
            return WithdrawalOutcome.DOUBLE_SPEND

        log_msg("INFO", "VERIFIER", self.verifier_id, f"取款通过：{short_hex(public.nullifier_hash)}")
        return WithdrawalOutcome.ACCEPTED


def verify_serialized(vk_data: Union[bytes, str], proof_data: Union[bytes, str], public_inputs: Sequence[int],
                      backend: Optional[ProvingBackend] = None) -> bool:
    """
    从序列化的验证密钥与证明（bytes 或 hex）验证。
    证明字节格式错误视为拒绝；验证密钥格式错误属于配置问题，直接抛出。
    """
    backend = backend or Groth16Backend()
    vk = VerifyingKey.from_hex(vk_data) if isinstance(vk_data, str) else VerifyingKey.from_bytes(vk_data)
    try:
        proof = Proof.from_hex(proof_data) if isinstance(proof_data, str) else Proof.from_bytes(proof_data)
    except ValueError as e:
        log_msg("WARN", "VERIFIER", None, f"证明无法解析：{e}")
        return False
    return backend.verify(proof, vk, list(public_inputs))
