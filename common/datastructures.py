import secrets
import struct
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Tuple

from crypto import (
    G1Element, G2Element,
    G1_BYTES, G2_BYTES,
    serialize_g1, deserialize_g1,
    serialize_g2, deserialize_g2,
)


@dataclass(frozen=True)
class Note:
    """存款秘密对 (nullifier, secret)：只有花费者知道，永不公开。"""
    nullifier: int
    secret: int

    @classmethod
    def random(cls, modulus: int) -> 'Note':
        return cls(nullifier=secrets.randbelow(modulus), secret=secrets.randbelow(modulus))

    def to_dict(self) -> dict:
        return {"nullifier": hex(self.nullifier), "secret": hex(self.secret)}

    @classmethod
    def from_dict(cls, data: dict) -> 'Note':
        return cls(nullifier=int(data["nullifier"], 16), secret=int(data["secret"], 16))


@dataclass
class MerklePath:
    """认证路径：自叶子至根的 (兄弟节点, 方向位) 序列。"""
    siblings: List[int] = field(default_factory=list)
    directions: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.siblings)

    def pairs(self) -> List[Tuple[int, int]]:
        return list(zip(self.siblings, self.directions))

    def to_dict(self) -> dict:
        return {"siblings": [hex(s) for s in self.siblings], "directions": list(self.directions)}

    @classmethod
    def from_dict(cls, data: dict) -> 'MerklePath':
        return cls(siblings=[int(s, 16) for s in data["siblings"]], directions=list(data["directions"]))


@dataclass(frozen=True)
class PublicInputs:
    """验证者可见的全部公开信号：默克尔根与作废哈希（顺序与电路一致）。"""
    root: int
    nullifier_hash: int

    def as_list(self) -> List[int]:
        return [self.root, self.nullifier_hash]

    def to_dict(self) -> dict:
        return {"root": hex(self.root), "nullifier_hash": hex(self.nullifier_hash)}


@dataclass
class Witness:
    """对约束系统每个变量的完整赋值（索引 0 恒为 1）。"""
    values: List[int]
    public_indices: List[int]
    names: Dict[str, int] = field(default_factory=dict)

    @property
    def public_inputs(self) -> List[int]:
        return [self.values[i] for i in self.public_indices]

    def value_of(self, name: str) -> int:
        if name not in self.names:
            raise KeyError(f"见证中没有名为 {name} 的变量")
        return self.values[self.names[name]]


@dataclass
class Proof:
    """Groth16 证明 (A ∈ G1, B ∈ G2, C ∈ G1)。"""
    a: G1Element
    b: G2Element
    c: G1Element

    def to_bytes(self) -> bytes:
        return serialize_g1(self.a) + serialize_g2(self.b) + serialize_g1(self.c)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Proof':
        if len(data) != 2 * G1_BYTES + G2_BYTES:
            raise ValueError("证明序列化长度不正确")
        a = deserialize_g1(data[:G1_BYTES])
        b = deserialize_g2(data[G1_BYTES:G1_BYTES + G2_BYTES])
        c = deserialize_g1(data[G1_BYTES + G2_BYTES:])
        return cls(a=a, b=b, c=c)

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, data: str) -> 'Proof':
        return cls.from_bytes(bytes.fromhex(data))


@dataclass
class VerifyingKey:
    """验证密钥，绑定到一个确定的约束系统（circuit_digest）。"""
    alpha_g1: G1Element
    beta_g2: G2Element
    gamma_g2: G2Element
    delta_g2: G2Element
    ic: List[G1Element]
    circuit_digest: bytes

    @property
    def num_public_inputs(self) -> int:
        # ic[0] 对应常量 1
        return len(self.ic) - 1

    def to_bytes(self) -> bytes:
        parts = [
            self.circuit_digest,
            serialize_g1(self.alpha_g1),
            serialize_g2(self.beta_g2),
            serialize_g2(self.gamma_g2),
            serialize_g2(self.delta_g2),
            struct.pack(">I", len(self.ic)),
        ]
        parts.extend(serialize_g1(p) for p in self.ic)
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'VerifyingKey':
        off = 0

        def take(n: int) -> bytes:
            nonlocal off
            if off + n > len(data):
                raise ValueError("验证密钥序列化数据被截断")
            chunk = data[off:off + n]
            off += n
            return chunk

        digest = take(32)
        alpha = deserialize_g1(take(G1_BYTES))
        beta = deserialize_g2(take(G2_BYTES))
        gamma = deserialize_g2(take(G2_BYTES))
        delta = deserialize_g2(take(G2_BYTES))
        (count,) = struct.unpack(">I", take(4))
        ic = [deserialize_g1(take(G1_BYTES)) for _ in range(count)]
        if off != len(data):
            raise ValueError("验证密钥序列化数据有多余字节")
        return cls(alpha_g1=alpha, beta_g2=beta, gamma_g2=gamma, delta_g2=delta, ic=ic, circuit_digest=digest)

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, data: str) -> 'VerifyingKey':
        return cls.from_bytes(bytes.fromhex(data))


@dataclass
class ProvingKey:
    """证明密钥：每个电路版本生成一次，所有证明复用（只读）。"""
    alpha_g1: G1Element
    beta_g1: G1Element
    beta_g2: G2Element
    delta_g1: G1Element
    delta_g2: G2Element
    a_query: List[G1Element]
    b_g1_query: List[G1Element]
    b_g2_query: List[G2Element]
    h_query: List[G1Element]
    # 仅私有变量：变量索引 -> [(βA+αB+C)/δ]_1
    l_query: Dict[int, G1Element]
    domain_size: int
    circuit_digest: bytes

    def to_dict(self) -> dict:
        return {
            "alpha_g1": serialize_g1(self.alpha_g1).hex(),
            "beta_g1": serialize_g1(self.beta_g1).hex(),
            "beta_g2": serialize_g2(self.beta_g2).hex(),
            "delta_g1": serialize_g1(self.delta_g1).hex(),
            "delta_g2": serialize_g2(self.delta_g2).hex(),
            "a_query": [serialize_g1(p).hex() for p in self.a_query],
            "b_g1_query": [serialize_g1(p).hex() for p in self.b_g1_query],
            "b_g2_query": [serialize_g2(p).hex() for p in self.b_g2_query],
            "h_query": [serialize_g1(p).hex() for p in self.h_query],
            "l_query": {str(k): serialize_g1(p).hex() for k, p in self.l_query.items()},
            "domain_size": self.domain_size,
            "circuit_digest": self.circuit_digest.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProvingKey':
        g1 = lambda h: deserialize_g1(bytes.fromhex(h))
        g2 = lambda h: deserialize_g2(bytes.fromhex(h))
        return cls(
            alpha_g1=g1(data["alpha_g1"]),
            beta_g1=g1(data["beta_g1"]),
            beta_g2=g2(data["beta_g2"]),
            delta_g1=g1(data["delta_g1"]),
            delta_g2=g2(data["delta_g2"]),
            a_query=[g1(h) for h in data["a_query"]],
            b_g1_query=[g1(h) for h in data["b_g1_query"]],
            b_g2_query=[g2(h) for h in data["b_g2_query"]],
            h_query=[g1(h) for h in data["h_query"]],
            l_query={int(k): g1(h) for k, h in data["l_query"].items()},
            domain_size=int(data["domain_size"]),
            circuit_digest=bytes.fromhex(data["circuit_digest"]),
        )


class WithdrawalOutcome(Enum):
    """取款流程的显式结果；拒绝不是系统故障，不做重试。"""
    ACCEPTED = "accepted"
    REJECTED_PROOF = "rejected_proof"
    UNKNOWN_ROOT = "unknown_root"
    DOUBLE_SPEND = "double_spend"


@dataclass
class WithdrawalRequest:
    """提交给验证者的取款请求：证明 + 公开信号。"""
    proof: Proof
    public: PublicInputs

    def to_dict(self) -> dict:
        d = asdict(self.public)
        d = {k: hex(v) for k, v in d.items()}
        d["proof"] = self.proof.to_hex()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'WithdrawalRequest':
        return cls(
            proof=Proof.from_hex(data["proof"]),
            public=PublicInputs(root=int(data["root"], 16), nullifier_hash=int(data["nullifier_hash"], 16)),
        )
