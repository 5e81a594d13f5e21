from typing import List, Sequence, Tuple

# BN254 标量域的乘法生成元（2-adicity 为 28）
PRIMITIVE_ROOT = 5


def compute_root_of_unity(primitive_root: int, order: int, modulus: int) -> int:
    """返回满足 w**order = 1 的单位根 w；order 必须整除 modulus - 1。"""
    if (modulus - 1) % order:
        raise ValueError(f"阶 {order} 不整除 modulus - 1")
    return pow(primitive_root, (modulus - 1) // order, modulus)


def compute_roots_of_unity(primitive_root: int, order: int, modulus: int) -> Tuple[int, ...]:
    """按幂次顺序列出 order 个单位根 1, w, w^2, ..."""
    root_of_unity = compute_root_of_unity(primitive_root, order, modulus)

    roots = []
    current_root_of_unity = 1
    for _ in range(order):
        roots.append(current_root_of_unity)
        current_root_of_unity = current_root_of_unity * root_of_unity % modulus
    return tuple(roots)


def _fft(vals: Sequence[int], roots_of_unity: Sequence[int], modulus: int) -> List[int]:
    if len(vals) == 1:
        return list(vals)
    L = _fft(vals[::2], roots_of_unity[::2], modulus)
    R = _fft(vals[1::2], roots_of_unity[::2], modulus)
    o = [0] * len(vals)
    for i, (x, y) in enumerate(zip(L, R)):
        y_times_root = y * roots_of_unity[i] % modulus
        o[i] = (x + y_times_root) % modulus
        o[i + len(L)] = (x - y_times_root) % modulus
    return o


def _check_length(vals: Sequence[int], roots_of_unity: Sequence[int]):
    if len(vals) != len(roots_of_unity):
        raise ValueError(f"值的个数 {len(vals)} 与单位根个数 {len(roots_of_unity)} 不符")


def fft(vals: Sequence[int], roots_of_unity: Sequence[int], modulus: int) -> List[int]:
    _check_length(vals, roots_of_unity)
    return _fft(vals, roots_of_unity, modulus)


def ifft(vals: Sequence[int], roots_of_unity: Sequence[int], modulus: int) -> List[int]:
    _check_length(vals, roots_of_unity)
    # modular inverse
    invlen = pow(len(vals), modulus - 2, modulus)
    return [
        x * invlen % modulus
        for x in _fft(vals, [roots_of_unity[0], *roots_of_unity[:0:-1]], modulus)
    ]


def coset_fft(coeffs: Sequence[int], shift: int, roots_of_unity: Sequence[int], modulus: int) -> List[int]:
    """在陪集 shift·<w> 上求值：先把第 k 个系数乘以 shift^k。"""
    scaled = []
    factor = 1
    for c in coeffs:
        scaled.append(c * factor % modulus)
        factor = factor * shift % modulus
    return fft(scaled, roots_of_unity, modulus)


def coset_ifft(vals: Sequence[int], shift: int, roots_of_unity: Sequence[int], modulus: int) -> List[int]:
    """coset_fft 的逆：插值后把第 k 个系数除以 shift^k。"""
    coeffs = ifft(vals, roots_of_unity, modulus)
    inv_shift = pow(shift, modulus - 2, modulus)
    factor = 1
    out = []
    for c in coeffs:
        out.append(c * factor % modulus)
        factor = factor * inv_shift % modulus
    return out


class EvaluationDomain:
    """大小为 2 的幂的乘法子群 <w>，QAP 的插值点集合。"""

    def __init__(self, min_size: int, modulus: int, primitive_root: int = PRIMITIVE_ROOT):
        size = 1
        while size < max(min_size, 2):
            size <<= 1
        if (modulus - 1) % size != 0:
            raise ValueError(f"字段不支持大小为 {size} 的求值域")
        self.size = size
        self.modulus = modulus
        self.roots = compute_roots_of_unity(primitive_root, size, modulus)
        # 生成元不在子群内，可作陪集偏移
        self.coset_shift = primitive_root

    def vanishing_at(self, x: int) -> int:
        """Z(x) = x^n - 1。"""
        return (pow(x, self.size, self.modulus) - 1) % self.modulus

    def lagrange_at(self, tau: int) -> List[int]:
        """
        计算 L_i(tau)，i ∈ [0, n)：
            L_i(tau) = w^i (tau^n - 1) / (n (tau - w^i))
        tau 不能落在子群内。
        """
        p = self.modulus
        z = self.vanishing_at(tau)
        if z == 0:
            raise ValueError("tau 落在求值域内")
        n_inv = pow(self.size, p - 2, p)
        return [w * z % p * n_inv % p * pow((tau - w) % p, p - 2, p) % p for w in self.roots]

    def fft(self, vals: Sequence[int]) -> List[int]:
        return fft(vals, self.roots, self.modulus)

    def ifft(self, vals: Sequence[int]) -> List[int]:
        return ifft(vals, self.roots, self.modulus)

    def coset_fft(self, coeffs: Sequence[int]) -> List[int]:
        return coset_fft(coeffs, self.coset_shift, self.roots, self.modulus)

    def coset_ifft(self, vals: Sequence[int]) -> List[int]:
        return coset_ifft(vals, self.coset_shift, self.roots, self.modulus)
