"""
Groth16 后端使用的密码学原语，基于 py_ecc 库。

曲线为 BN128（altbn128/BN254），其标量域即电路的默认字段。
注意：本模块的 serialize_* 返回 bytes（定长、确定性编码），便于落盘或网络传输后再 hex。
"""
import hashlib
import secrets
from typing import TypeAlias, Any, Tuple

from py_ecc.fields import optimized_bn128_FQ12 as FQ12
from py_ecc.optimized_bn128 import (
    FQ, FQ2,
    G1, G2, Z1, Z2,
    add,
    b, b2,
    curve_order as CURVE_ORDER,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    pairing as ecc_pairing,
)

# --- 为清晰起见定义的类型别名 ---
Scalar: TypeAlias = int
G1Element: TypeAlias = Any
G2Element: TypeAlias = Any

# --- 密码学原语 ---
g1_generator: G1Element = G1
g2_generator: G2Element = G2
G1_IDENTITY: G1Element = Z1
G2_IDENTITY: G2Element = Z2


def random_scalar() -> Scalar:
    """生成一个范围在[1, CURVE_ORDER - 1]内的随机标量。"""
    return secrets.randbelow(CURVE_ORDER - 1) + 1


def hash_to_scalar(data: bytes) -> Scalar:
    """将字节字符串哈希为标量，模曲线阶。"""
    h = hashlib.sha256(data).digest()
    return int.from_bytes(h, 'big') % CURVE_ORDER


def g1_mul(k: Scalar) -> G1Element:
    return multiply(g1_generator, k % CURVE_ORDER)


def g2_mul(k: Scalar) -> G2Element:
    return multiply(g2_generator, k % CURVE_ORDER)


def g1_is_valid(p: G1Element) -> bool:
    return is_on_curve(p, b)


def g2_is_valid(p: G2Element) -> bool:
    """
    G2 点必须在扭曲曲线上且属于 r 阶子群。
    扭曲曲线的余因子很大，只检查曲线方程不足以排除小子群中的点。
    """
    if not is_on_curve(p, b2):
        return False
    return is_inf(multiply(p, CURVE_ORDER))


def multi_scalar_mul(points, scalars, identity: Any = G1_IDENTITY) -> Any:
    """
    朴素的多标量乘法 Σ k_i·P_i。
    零标量与无穷远点直接跳过，稀疏见证（大量 0/1）下可节省大部分点乘。
    """
    acc = identity
    for p, k in zip(points, scalars):
        k %= CURVE_ORDER
        if k == 0 or is_inf(p):
            continue
        acc = add(acc, p if k == 1 else multiply(p, k))
    return acc


def pairing_product_is_one(pairs) -> bool:
    """
    检查 Π e(P_i, Q_i) == 1。
    每对只跑 Miller 循环，最后统一做一次最终幂，比逐个完整配对快得多。
    pairs: [(p_g1, q_g2), ...]
    """
    acc = FQ12.one()
    for p_g1, q_g2 in pairs:
        if is_inf(p_g1) or is_inf(q_g2):
            continue
        acc = acc * ecc_pairing(q_g2, p_g1, final_exponentiate=False)
    return final_exponentiate(acc) == FQ12.one()


# --- 内部工具：提取 int/坐标 ---
def _int_of(x: Any) -> int:
    if hasattr(x, "n"):
        return int(x.n)
    return int(x)


def _fq2_to_pair(x: Any) -> Tuple[int, int]:
    # optimized FQ2 以 coeffs 保存两个整数系数
    a, c = x.coeffs
    return _int_of(a), _int_of(c)


# --- 序列化 / 反序列化（bytes） ---
# 约定：
# - G1: x(32) || y(32) || z(32) 共 96 字节，Z1 用全 0 表示
# - G2: x.c0(32)||x.c1(32)||y.c0(32)||y.c1(32)||z.c0(32)||z.c1(32) 共 192 字节，Z2 同理全 0
G1_BYTES = 96
G2_BYTES = 192
SCALAR_BYTES = 32


def serialize_g1(p: G1Element) -> bytes:
    if is_inf(p):
        return b"\x00" * G1_BYTES
    x = _int_of(p[0])
    y = _int_of(p[1])
    z = _int_of(p[2])
    return x.to_bytes(32, "big") + y.to_bytes(32, "big") + z.to_bytes(32, "big")


def deserialize_g1(data: bytes) -> G1Element:
    if len(data) != G1_BYTES:
        raise ValueError(f"G1 序列化长度应为 {G1_BYTES} 字节")
    if data == b"\x00" * G1_BYTES:
        return G1_IDENTITY
    x = int.from_bytes(data[0:32], "big")
    y = int.from_bytes(data[32:64], "big")
    z = int.from_bytes(data[64:96], "big")
    return (FQ(x), FQ(y), FQ(z))


def serialize_g2(p: G2Element) -> bytes:
    if is_inf(p):
        return b"\x00" * G2_BYTES
    x0, x1 = _fq2_to_pair(p[0])
    y0, y1 = _fq2_to_pair(p[1])
    z0, z1 = _fq2_to_pair(p[2])
    return b"".join(v.to_bytes(32, "big") for v in (x0, x1, y0, y1, z0, z1))


def deserialize_g2(data: bytes) -> G2Element:
    if len(data) != G2_BYTES:
        raise ValueError(f"G2 序列化长度应为 {G2_BYTES} 字节")
    if data == b"\x00" * G2_BYTES:
        return G2_IDENTITY
    vals = [int.from_bytes(data[i:i + 32], "big") for i in range(0, G2_BYTES, 32)]
    X = FQ2([vals[0], vals[1]])
    Y = FQ2([vals[2], vals[3]])
    Z = FQ2([vals[4], vals[5]])
    return (X, Y, Z)


def serialize_scalar(s: Scalar) -> bytes:
    return int(s).to_bytes(SCALAR_BYTES, "big")


def deserialize_scalar(data: bytes) -> Scalar:
    if len(data) != SCALAR_BYTES:
        raise ValueError(f"标量序列化长度应为 {SCALAR_BYTES} 字节")
    return int.from_bytes(data, "big")


def negate_g1(p: G1Element) -> G1Element:
    return neg(p)
