"""
R1CS 约束系统构建器

电路中的每个值都是见证向量 w 中变量的线性组合，例如 x = w0 + 5·w2 + 7·w3 表示为
{0: 1, 2: 5, 3: 7}（系数为 0 的项省略，索引 0 恒为常量 1）。每条约束形如

    <A, w> · <B, w> = <C, w>

- ConstraintSystem：按电路定义分配变量、生成约束，并为每个中间变量记录求解函数，
  使得只凭命名输入即可算出完整赋值。
- R1CS：compile() 之后不可变的约束系统（拓扑每个电路版本固定一次）。
"""
import hashlib
import struct
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from common.datastructures import Witness
from common.errors import ConfigurationError, UnsatisfiedWitnessError
from utils import to_field

Solver = Callable[[List[int], Dict[str, int]], int]


class LinearCombination:
    """变量的稀疏线性组合 {变量索引: 系数}，系数在字段内。"""

    __slots__ = ("terms", "modulus")

    def __init__(self, terms: Dict[int, int], modulus: int):
        self.modulus = modulus
        self.terms = {i: c % modulus for i, c in terms.items() if c % modulus}

    @classmethod
    def constant(cls, value: int, modulus: int) -> 'LinearCombination':
        return cls({0: value}, modulus)

    def _coerce(self, other) -> 'LinearCombination':
        if isinstance(other, LinearCombination):
            if other.modulus != self.modulus:
                raise ConfigurationError("线性组合来自不同字段")
            return other
        if isinstance(other, int):
            return LinearCombination.constant(other, self.modulus)
        return NotImplemented

    def __add__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        terms = dict(self.terms)
        for i, c in other.terms.items():
            terms[i] = terms.get(i, 0) + c
        return LinearCombination(terms, self.modulus)

    __radd__ = __add__

    def __neg__(self):
        return LinearCombination({i: -c for i, c in self.terms.items()}, self.modulus)

    def __sub__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return self + (-other)

    def __rsub__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return other + (-self)

    def __mul__(self, scalar):
        # 两个线性组合相乘需要约束，请使用 ConstraintSystem.mul
        if not isinstance(scalar, int):
            return NotImplemented
        return LinearCombination({i: c * scalar for i, c in self.terms.items()}, self.modulus)

    __rmul__ = __mul__

    @property
    def is_constant(self) -> bool:
        return all(i == 0 for i in self.terms)

    @property
    def constant_value(self) -> int:
        return self.terms.get(0, 0)

    def single_variable(self) -> Optional[int]:
        """若组合恰为 1·w_i（i ≠ 0），返回 i。"""
        if len(self.terms) == 1:
            (i, c), = self.terms.items()
            if i != 0 and c == 1:
                return i
        return None

    def evaluate(self, values: List[int]) -> int:
        return sum(values[i] * c for i, c in self.terms.items()) % self.modulus

    def __repr__(self):
        body = " + ".join(f"{c}*w{i}" if i else str(c) for i, c in sorted(self.terms.items()))
        return f"LC({body or '0'})"


@dataclass
class Constraint:
    a: Dict[int, int]
    b: Dict[int, int]
    c: Dict[int, int]
    label: str = ""


def _dot(terms: Dict[int, int], values: List[int], modulus: int) -> int:
    return sum(values[i] * c for i, c in terms.items()) % modulus


class ConstraintSystem:
    """
    电路构建器。电路定义通过本类分配输入、生成约束；
    公开输入按声明顺序排列，且只有显式声明为 public 的变量才是公开的。
    """

    def __init__(self, modulus: int):
        self.modulus = modulus
        self.constraints: List[Constraint] = []
        # 第 0 个变量恒为 1
        self.solvers: List[Solver] = [lambda values, inputs: 1]
        self.public_indices: List[int] = []
        self.inputs: Dict[str, int] = {}
        self.names: Dict[str, int] = {}
        self.one = LinearCombination.constant(1, modulus)

    @property
    def num_variables(self) -> int:
        return len(self.solvers)

    def _alloc(self, solver: Solver) -> int:
        self.solvers.append(solver)
        return len(self.solvers) - 1

    def _input(self, name: str, public: bool) -> LinearCombination:
        if name in self.inputs:
            raise ConfigurationError(f"重复的输入名 {name}")

        def solver(values, inputs, _name=name):
            if _name not in inputs:
                raise ConfigurationError(f"缺少输入 {_name}")
            return to_field(inputs[_name], self.modulus)

        idx = self._alloc(solver)
        self.inputs[name] = idx
        self.names[name] = idx
        if public:
            self.public_indices.append(idx)
        return LinearCombination({idx: 1}, self.modulus)

    def public_input(self, name: str) -> LinearCombination:
        return self._input(name, public=True)

    def private_input(self, name: str) -> LinearCombination:
        return self._input(name, public=False)

    def constant(self, value: int) -> LinearCombination:
        return LinearCombination.constant(value, self.modulus)

    def lc(self, x: Union[int, LinearCombination]) -> LinearCombination:
        if isinstance(x, LinearCombination):
            return x
        return self.constant(x)

    def enforce(self, a, b, c, label: str = ""):
        """添加约束 a · b = c。"""
        a, b, c = self.lc(a), self.lc(b), self.lc(c)
        self.constraints.append(Constraint(dict(a.terms), dict(b.terms), dict(c.terms), label))

    def mul(self, a, b, label: str = "mul") -> LinearCombination:
        """
        返回 a·b。任一方为常量时直接缩放，不产生约束；
        否则分配一个新变量 c 并添加约束 a · b = c。
        """
        a, b = self.lc(a), self.lc(b)
        if a.is_constant:
            return b * a.constant_value
        if b.is_constant:
            return a * b.constant_value
        idx = self._alloc(lambda values, inputs: a.evaluate(values) * b.evaluate(values) % self.modulus)
        out = LinearCombination({idx: 1}, self.modulus)
        self.enforce(a, b, out, label)
        return out

    def pow(self, x, exponent: int, label: str = "pow") -> LinearCombination:
        """平方-乘法求幂；指数 5 需要 3 条约束。"""
        if exponent < 1:
            raise ConfigurationError("指数必须为正")
        x = self.lc(x)
        result = None
        base = x
        e = exponent
        while e:
            if e & 1:
                result = base if result is None else self.mul(result, base, label)
            e >>= 1
            if e:
                base = self.mul(base, base, label)
        return result

    def assert_equal(self, a, b, label: str = "assert_equal"):
        """(a - b) · 1 = 0"""
        self.enforce(self.lc(a) - self.lc(b), self.one, self.constant(0), label)

    def assert_boolean(self, bit, label: str = "assert_boolean"):
        """b · (b - 1) = 0，即 b ∈ {0, 1}。"""
        bit = self.lc(bit)
        self.enforce(bit, bit - 1, self.constant(0), label)

    def select(self, bit, if_one, if_zero, label: str = "select") -> LinearCombination:
        """bit 为 1 时取 if_one，否则取 if_zero：if_zero + bit·(if_one - if_zero)。"""
        if_one, if_zero = self.lc(if_one), self.lc(if_zero)
        return if_zero + self.mul(bit, if_one - if_zero, label)

    def name(self, x, name: str) -> LinearCombination:
        """
        给某个值命名，便于从满足的见证中提取（如电路内哈希结果）。
        非单变量的组合会被物化为一个新变量：x · 1 = v。
        """
        x = self.lc(x)
        if name in self.names:
            raise ConfigurationError(f"重复的变量名 {name}")
        idx = x.single_variable()
        if idx is None:
            # 求解函数必须绑定物化之前的组合，下面 x 会被替换为新变量
            idx = self._alloc(lambda values, inputs, src=x: src.evaluate(values))
            out = LinearCombination({idx: 1}, self.modulus)
            self.enforce(x, self.one, out, f"name:{name}")
            x = out
        self.names[name] = idx
        return x

    def compile(self) -> 'R1CS':
        """
        冻结为 R1CS。为常量 1 与每个公开输入追加一行 x_i · 0 = 0，
        保证公开输入对应的多项式线性无关。
        """
        constraints = list(self.constraints)
        for idx in [0] + self.public_indices:
            constraints.append(Constraint({idx: 1}, {}, {}, "public_binding"))
        return R1CS(
            modulus=self.modulus,
            constraints=constraints,
            solvers=list(self.solvers),
            public_indices=list(self.public_indices),
            inputs=dict(self.inputs),
            names=dict(self.names),
        )


class R1CS:
    """编译后的约束系统（不可变）。"""

    def __init__(self, modulus: int, constraints: List[Constraint], solvers: List[Solver],
                 public_indices: List[int], inputs: Dict[str, int], names: Dict[str, int]):
        self.modulus = modulus
        self.constraints = constraints
        self._solvers = solvers
        self.public_indices = public_indices
        self.inputs = inputs
        self.names = names
        self._digest: Optional[bytes] = None

    @property
    def num_variables(self) -> int:
        return len(self._solvers)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_public_inputs(self) -> int:
        return len(self.public_indices)

    @property
    def public_names(self) -> List[str]:
        by_index = {idx: name for name, idx in self.inputs.items()}
        return [by_index[i] for i in self.public_indices]

    @property
    def private_indices(self) -> List[int]:
        public = set(self.public_indices)
        return [i for i in range(1, self.num_variables) if i not in public]

    def solve(self, inputs: Dict[str, int]) -> Witness:
        """按分配顺序依次求解所有变量（不检查约束）。"""
        unknown = set(inputs) - set(self.inputs)
        if unknown:
            raise ConfigurationError(f"未知输入: {sorted(unknown)}")
        values: List[int] = []
        for solver in self._solvers:
            values.append(solver(values, inputs))
        return Witness(values=values, public_indices=list(self.public_indices), names=dict(self.names))

    def check(self, values: List[int]):
        """检查每条约束；第一条不满足的约束以 UnsatisfiedWitnessError 报告。"""
        if len(values) != self.num_variables:
            raise UnsatisfiedWitnessError(f"见证长度 {len(values)} 与变量数 {self.num_variables} 不符")
        if values[0] != 1:
            raise UnsatisfiedWitnessError("见证第 0 个变量必须为 1")
        p = self.modulus
        for i, con in enumerate(self.constraints):
            if _dot(con.a, values, p) * _dot(con.b, values, p) % p != _dot(con.c, values, p):
                raise UnsatisfiedWitnessError(f"约束 #{i} ({con.label}) 不满足", i, con.label)

    def is_satisfied(self, values: List[int]) -> bool:
        try:
            self.check(values)
        except UnsatisfiedWitnessError:
            return False
        return True

    def digest(self) -> bytes:
        """约束矩阵、公开输入布局与模数的 SHA-256 摘要，用于把密钥绑定到电路版本。"""
        if self._digest is None:
            h = hashlib.sha256()
            h.update(self.modulus.to_bytes(32, "big"))
            h.update(struct.pack(">III", self.num_variables, self.num_constraints, self.num_public_inputs))
            for idx in self.public_indices:
                h.update(struct.pack(">I", idx))
            for con in self.constraints:
                for terms in (con.a, con.b, con.c):
                    h.update(struct.pack(">I", len(terms)))
                    for i in sorted(terms):
                        h.update(struct.pack(">I", i))
                        h.update(terms[i].to_bytes(32, "big"))
            self._digest = h.digest()
        return self._digest
