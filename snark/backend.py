"""
证明系统后端能力接口

关系定义（电路）只依赖 ProvingBackend 的四个能力：compile / setup / prove / verify，
替换成别的 SNARK 构造不需要改动电路与小工具。

ProvingSession 表示单个电路版本的生命周期：
    UNCOMPILED -> COMPILED -> KEYS_GENERATED
状态只能单向推进；换电路版本（例如不同的树深度）必须新建会话并重新 setup。
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple

from common.datastructures import Proof, ProvingKey, VerifyingKey, Witness
from common.errors import ConfigurationError
from crypto import CURVE_ORDER
from snark.groth16 import Groth16
from snark.r1cs import ConstraintSystem, R1CS
from utils import log_msg


class CircuitDefinition(Protocol):
    """电路定义：在给定的 ConstraintSystem 上声明输入并生成约束。"""
    modulus: int

    def define(self, cs: ConstraintSystem) -> None:
        ...


class ProvingBackend(ABC):
    """可替换的证明系统能力。"""

    @abstractmethod
    def compile(self, circuit: CircuitDefinition) -> R1CS:
        ...

    @abstractmethod
    def setup(self, r1cs: R1CS) -> Tuple[ProvingKey, VerifyingKey]:
        ...

    @abstractmethod
    def prove(self, r1cs: R1CS, pk: ProvingKey, witness: Witness) -> Proof:
        ...

    @abstractmethod
    def verify(self, proof: Proof, vk: VerifyingKey, public_inputs: Sequence[int]) -> bool:
        ...


class Groth16Backend(ProvingBackend):
    """BN254 上的 Groth16。字段模数必须等于曲线标量域阶。"""

    curve_order = CURVE_ORDER

    def compile(self, circuit: CircuitDefinition) -> R1CS:
        if circuit.modulus != self.curve_order:
            raise ConfigurationError("电路字段与后端曲线（BN254）的标量域不一致")
        cs = ConstraintSystem(circuit.modulus)
        circuit.define(cs)
        r1cs = cs.compile()
        log_msg("INFO", "COMPILE", type(circuit).__name__,
                f"{r1cs.num_constraints} 条约束，{r1cs.num_variables} 个变量，公开输入 {r1cs.public_names}")
        return r1cs

    def setup(self, r1cs: R1CS) -> Tuple[ProvingKey, VerifyingKey]:
        return Groth16.setup(r1cs)

    def prove(self, r1cs: R1CS, pk: ProvingKey, witness: Witness) -> Proof:
        return Groth16.prove(r1cs, pk, witness)

    def verify(self, proof: Proof, vk: VerifyingKey, public_inputs: Sequence[int]) -> bool:
        ok = Groth16.verify(vk, list(public_inputs), proof)
        log_msg("DEBUG", "VERIFY", None, f"验证结果: {ok}")
        return ok


class Lifecycle(Enum):
    UNCOMPILED = "uncompiled"
    COMPILED = "compiled"
    KEYS_GENERATED = "keys_generated"


class ProvingSession:
    """
    单个电路版本的编译 -> 密钥生成 -> 证明/验证流程。
    证明阶段只读共享证明密钥，可以并发地为相互独立的见证生成证明。
    """

    def __init__(self, circuit: CircuitDefinition, backend: Optional[ProvingBackend] = None):
        self.circuit = circuit
        self.backend = backend or Groth16Backend()
        self.state = Lifecycle.UNCOMPILED
        self.r1cs: Optional[R1CS] = None
        self.proving_key: Optional[ProvingKey] = None
        self.verifying_key: Optional[VerifyingKey] = None

    def compile(self) -> R1CS:
        if self.state is not Lifecycle.UNCOMPILED:
            raise ConfigurationError("电路已编译；新的电路版本需要新的会话")
        self.r1cs = self.backend.compile(self.circuit)
        self.state = Lifecycle.COMPILED
        return self.r1cs

    def setup(self) -> Tuple[ProvingKey, VerifyingKey]:
        if self.state is not Lifecycle.COMPILED:
            raise ConfigurationError(f"当前状态 {self.state.value} 不能执行 setup")
        self.proving_key, self.verifying_key = self.backend.setup(self.r1cs)
        self.state = Lifecycle.KEYS_GENERATED
        return self.proving_key, self.verifying_key

    def prepare(self) -> 'ProvingSession':
        """依次执行尚未完成的 compile 与 setup。"""
        if self.state is Lifecycle.UNCOMPILED:
            self.compile()
        if self.state is Lifecycle.COMPILED:
            self.setup()
        return self

    def prove(self, witness: Witness) -> Proof:
        if self.state is not Lifecycle.KEYS_GENERATED:
            raise ConfigurationError("尚未生成密钥，不能生成证明")
        return self.backend.prove(self.r1cs, self.proving_key, witness)

    def verify(self, proof: Proof, public_inputs: Sequence[int]) -> bool:
        if self.verifying_key is None:
            raise ConfigurationError("尚未生成密钥，不能验证")
        return self.backend.verify(proof, self.verifying_key, public_inputs)
