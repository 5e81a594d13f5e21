"""
混币器关系演示入口点

该脚本编译取款电路、生成密钥，模拟若干笔存款与一笔取款，
验证证明并把公开输入、证明与验证密钥写入产物文件。
"""
import argparse
import json
from dataclasses import dataclass
from typing import Optional

from circuit.relation import MixerCircuit
from config import MixerConfig
from roles.depositor import Depositor
from roles.verifier import Verifier, verify_serialized
from roles.withdrawer import Withdrawer
from snark.backend import ProvingSession
from storage.manager import TreeManager
from utils import init_logging, log_msg


@dataclass
class DemoConfig:
    """演示流程的参数"""
    num_deposits: int = 4
    withdraw_index: int = 1
    artifacts_file: str = "mixer_artifacts.txt"


def load_config(path: Optional[str]) -> MixerConfig:
    if not path:
        return MixerConfig()
    with open(path, "r", encoding="utf-8") as f:
        return MixerConfig.from_dict(json.load(f))


def write_artifacts(path: str, circuit: MixerCircuit, session: ProvingSession, request) -> None:
    lines = [
        f"circuit: {circuit!r}",
        f"constraints: {session.r1cs.num_constraints}",
        f"public inputs: {session.r1cs.public_names}",
        f"root: {request.public.root:#x}",
        f"nullifier_hash: {request.public.nullifier_hash:#x}",
        f"proof: {request.proof.to_hex()}",
        f"verifying key: {session.verifying_key.to_hex()}",
    ]
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def run_demo(config: MixerConfig, demo: DemoConfig) -> bool:
    circuit = MixerCircuit(config)
    session = ProvingSession(circuit).prepare()

    tree = TreeManager(config)
    depositor = Depositor("alice", tree)
    notes = [depositor.deposit() for _ in range(demo.num_deposits)]
    note, index = notes[demo.withdraw_index]

    withdrawer = Withdrawer("bob", session, tree)
    request = withdrawer.withdraw(note, index)

    verifier = Verifier("pool", session.verifying_key, tree)
    outcome = verifier.process_withdrawal(request)
    replay = verifier.process_withdrawal(request)
    log_msg("INFO", "DEMO", None, f"首次取款: {outcome.value}，重放: {replay.value}")

    write_artifacts(demo.artifacts_file, circuit, session, request)
    ok = verify_serialized(session.verifying_key.to_bytes(), request.proof.to_bytes(), request.public.as_list())
    log_msg("INFO", "DEMO", None, f"从序列化产物重新验证: {ok}，产物写入 {demo.artifacts_file}")
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="混币器关系：setup / prove / verify 演示")
    parser.add_argument("--config", help="JSON 格式的 MixerConfig")
    parser.add_argument("--deposits", type=int, default=DemoConfig.num_deposits)
    parser.add_argument("--withdraw-index", type=int, default=DemoConfig.withdraw_index)
    parser.add_argument("--out", default=DemoConfig.artifacts_file)
    args = parser.parse_args()

    mixer_config = load_config(args.config)
    init_logging(log_file=mixer_config.log_file, level=mixer_config.log_level)
    run_demo(mixer_config, DemoConfig(args.deposits, args.withdraw_index, args.out))
