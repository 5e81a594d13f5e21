"""
基于 py_ecc（BN254）的 Groth16 zk-SNARK 实现。

- setup：本地采样陷门（tau, alpha, beta, gamma, delta），生成证明/验证密钥。
  没有可信设置仪式，仅供单方部署与测试使用。
- prove：见证不满足约束时直接拒绝（UnsatisfiedWitnessError），不会产生证明对象。
- verify：纯函数，验证 e(A, B) = e(α, β)·e(vk_x, γ)·e(C, δ)，无隐藏状态、无副作用。

求 A_m(τ)、B_m(τ)、C_m(τ) 时利用拉格朗日基在 τ 处的闭式值，复杂度 O(n)；
证明者在陪集上计算 H(X) = (A(X)·B(X) - C(X)) / Z(X)，因为 Z 在求值域上恒为 0。
"""
from typing import List, Sequence, Tuple

from common.datastructures import Proof, ProvingKey, VerifyingKey, Witness
from common.errors import ConfigurationError
from crypto import (
    CURVE_ORDER,
    G2_IDENTITY,
    add, g1_mul, g2_mul, multiply,
    g1_is_valid, g2_is_valid,
    multi_scalar_mul,
    negate_g1,
    random_scalar,
    pairing_product_is_one,
)
from snark.fft import EvaluationDomain
from snark.r1cs import R1CS
from utils import log_msg


def _inv(x: int) -> int:
    return pow(x, CURVE_ORDER - 2, CURVE_ORDER)


def _ensure_curve_field(r1cs: R1CS):
    if r1cs.modulus != CURVE_ORDER:
        raise ConfigurationError("约束系统的字段模数与 BN254 标量域不一致")


def _qap_at(r1cs: R1CS, lagrange: Sequence[int]) -> Tuple[List[int], List[int], List[int]]:
    """计算每个变量 m 的 A_m(τ)、B_m(τ)、C_m(τ)。约束矩阵是稀疏的，只遍历非零项。"""
    p = CURVE_ORDER
    M = r1cs.num_variables
    a_tau = [0] * M
    b_tau = [0] * M
    c_tau = [0] * M
    for L, con in zip(lagrange, r1cs.constraints):
        for m, v in con.a.items():
            a_tau[m] = (a_tau[m] + L * v) % p
        for m, v in con.b.items():
            b_tau[m] = (b_tau[m] + L * v) % p
        for m, v in con.c.items():
            c_tau[m] = (c_tau[m] + L * v) % p
    return a_tau, b_tau, c_tau


class Groth16:
    """Groth16 的 setup / prove / verify。"""

    @staticmethod
    def setup(r1cs: R1CS) -> Tuple[ProvingKey, VerifyingKey]:
        """为给定约束系统生成 (证明密钥, 验证密钥)。"""
        _ensure_curve_field(r1cs)
        p = CURVE_ORDER
        domain = EvaluationDomain(r1cs.num_constraints, p)
        n = domain.size

        # 陷门：tau 不能落在求值域内
        tau = random_scalar()
        while domain.vanishing_at(tau) == 0:
            tau = random_scalar()
        alpha, beta, gamma, delta = (random_scalar() for _ in range(4))

        lagrange = domain.lagrange_at(tau)
        a_tau, b_tau, c_tau = _qap_at(r1cs, lagrange)
        gamma_inv = _inv(gamma)
        delta_inv = _inv(delta)

        def combined(m: int) -> int:
            return (beta * a_tau[m] + alpha * b_tau[m] + c_tau[m]) % p

        ic = [g1_mul(combined(m) * gamma_inv) for m in [0] + r1cs.public_indices]
        l_query = {m: g1_mul(combined(m) * delta_inv) for m in r1cs.private_indices}
        a_query = [g1_mul(v) for v in a_tau]
        b_g1_query = [g1_mul(v) for v in b_tau]
        b_g2_query = [g2_mul(v) for v in b_tau]

        z_tau = domain.vanishing_at(tau)
        h_query = []
        tau_pow = 1
        for _ in range(n - 1):
            h_query.append(g1_mul(tau_pow * z_tau % p * delta_inv))
            tau_pow = tau_pow * tau % p

        digest = r1cs.digest()
        alpha_g1 = g1_mul(alpha)
        beta_g2 = g2_mul(beta)
        pk = ProvingKey(
            alpha_g1=alpha_g1,
            beta_g1=g1_mul(beta),
            beta_g2=beta_g2,
            delta_g1=g1_mul(delta),
            delta_g2=g2_mul(delta),
            a_query=a_query,
            b_g1_query=b_g1_query,
            b_g2_query=b_g2_query,
            h_query=h_query,
            l_query=l_query,
            domain_size=n,
            circuit_digest=digest,
        )
        vk = VerifyingKey(
            alpha_g1=alpha_g1,
            beta_g2=beta_g2,
            gamma_g2=g2_mul(gamma),
            delta_g2=pk.delta_g2,
            ic=ic,
            circuit_digest=digest,
        )
        log_msg("INFO", "SETUP", None,
                f"生成密钥：{r1cs.num_constraints} 条约束，{r1cs.num_variables} 个变量，求值域大小 {n}")
        return pk, vk

    @staticmethod
    def compute_h(r1cs: R1CS, values: List[int], domain: EvaluationDomain) -> List[int]:
        """H(X) 的系数（次数不超过 n-2）。"""
        p = CURVE_ORDER
        n = domain.size
        pad = [0] * (n - r1cs.num_constraints)
        a_eval = [sum(values[i] * c for i, c in con.a.items()) % p for con in r1cs.constraints] + pad
        b_eval = [sum(values[i] * c for i, c in con.b.items()) % p for con in r1cs.constraints] + pad
        c_eval = [sum(values[i] * c for i, c in con.c.items()) % p for con in r1cs.constraints] + pad

        a_coset = domain.coset_fft(domain.ifft(a_eval))
        b_coset = domain.coset_fft(domain.ifft(b_eval))
        c_coset = domain.coset_fft(domain.ifft(c_eval))
        # Z 在陪集 g·<w> 上恒为 g^n - 1
        z_inv = _inv(domain.vanishing_at(domain.coset_shift))
        h_coset = [(a * b - c) * z_inv % p for a, b, c in zip(a_coset, b_coset, c_coset)]
        h = domain.coset_ifft(h_coset)
        return h[:n - 1]

    @staticmethod
    def prove(r1cs: R1CS, pk: ProvingKey, witness: Witness) -> Proof:
        """由见证生成证明；见证不满足约束时抛出 UnsatisfiedWitnessError。"""
        _ensure_curve_field(r1cs)
        if pk.circuit_digest != r1cs.digest():
            raise ConfigurationError("证明密钥不属于该约束系统（电路版本不同）")
        values = witness.values
        # 先检查再证明：不满足的见证不会产生证明对象
        r1cs.check(values)

        domain = EvaluationDomain(r1cs.num_constraints, CURVE_ORDER)
        if domain.size != pk.domain_size:
            raise ConfigurationError("证明密钥的求值域大小与约束系统不符")
        h = Groth16.compute_h(r1cs, values, domain)

        r = random_scalar()
        s = random_scalar()

        a = add(pk.alpha_g1, multi_scalar_mul(pk.a_query, values))
        a = add(a, multiply(pk.delta_g1, r))

        b2 = add(pk.beta_g2, multi_scalar_mul(pk.b_g2_query, values, G2_IDENTITY))
        b2 = add(b2, multiply(pk.delta_g2, s))

        b1 = add(pk.beta_g1, multi_scalar_mul(pk.b_g1_query, values))
        b1 = add(b1, multiply(pk.delta_g1, s))

        private = r1cs.private_indices
        c = multi_scalar_mul([pk.l_query[m] for m in private], [values[m] for m in private])
        c = add(c, multi_scalar_mul(pk.h_query, h))
        c = add(c, multiply(a, s))
        c = add(c, multiply(b1, r))
        c = add(c, negate_g1(multiply(pk.delta_g1, r * s % CURVE_ORDER)))

        log_msg("DEBUG", "PROVER", None, f"生成 Groth16 证明（{r1cs.num_constraints} 条约束）")
        return Proof(a=a, b=b2, c=c)

    @staticmethod
    def verify(vk: VerifyingKey, public_inputs: Sequence[int], proof: Proof) -> bool:
        """
        验证证明。公开输入数量与密钥不符属于配置错误；
        其余任何不合法（越界输入、不在曲线上的点）都只是拒绝。
        """
        if len(public_inputs) != vk.num_public_inputs:
            raise ConfigurationError(
                f"公开输入数量 {len(public_inputs)} 与验证密钥 {vk.num_public_inputs} 不符")
        for x in public_inputs:
            if isinstance(x, bool) or not isinstance(x, int) or not 0 <= x < CURVE_ORDER:
                log_msg("WARN", "VERIFIER", None, "公开输入不是规范字段元素，拒绝")
                return False
        if not (g1_is_valid(proof.a) and g2_is_valid(proof.b) and g1_is_valid(proof.c)):
            log_msg("WARN", "VERIFIER", None, "证明中的点不在曲线上，拒绝")
            return False

        vk_x = vk.ic[0]
        vk_x = add(vk_x, multi_scalar_mul(vk.ic[1:], public_inputs))

        return pairing_product_is_one([
            (negate_g1(proof.a), proof.b),
            (vk.alpha_g1, vk.beta_g2),
            (vk_x, vk.gamma_g2),
            (proof.c, vk.delta_g2),
        ])
