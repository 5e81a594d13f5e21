import threading

import pytest

from common.errors import DoubleSpendError, MerkleTreeFullError
from merkle import MerkleTree
from storage.manager import TreeManager
from storage.nullifiers import NullifierRegistry


class TestTreeManager:

    def test_insert_records_root_history(self, small_config):
        manager = TreeManager(small_config)
        empty_root = manager.current_root()
        index = manager.insert(5)
        assert index == 0
        assert manager.num_leaves() == 1
        assert manager.is_known_root(empty_root)
        assert manager.is_known_root(manager.current_root())
        assert manager.known_roots() == [empty_root, manager.current_root()]

    def test_history_is_bounded(self, config_factory):
        manager = TreeManager(config_factory(root_history_size=2))
        first = manager.current_root()
        manager.insert(1)
        second = manager.current_root()
        manager.insert(2)
        assert not manager.is_known_root(first)
        assert manager.is_known_root(second)
        assert len(manager.known_roots()) == 2

    def test_unknown_root(self, small_config):
        manager = TreeManager(small_config)
        manager.insert(1)
        assert not manager.is_known_root(manager.current_root() + 1)

    def test_snapshot_is_consistent(self, small_config):
        manager = TreeManager(small_config)
        for leaf in (10, 20, 30):
            manager.insert(leaf)
        root, path = manager.snapshot(2)
        assert root == manager.current_root()
        assert manager.leaf(2) == 30
        assert MerkleTree.verify(30, path, root, manager.hasher)

    def test_full(self, small_config):
        manager = TreeManager(small_config)
        for leaf in range(small_config.capacity):
            manager.insert(leaf + 1)
        with pytest.raises(MerkleTreeFullError):
            manager.insert(99)

    def test_concurrent_inserts_get_distinct_indices(self, config_factory):
        manager = TreeManager(config_factory(tree_depth=4))
        indices = []
        lock = threading.Lock()

        def deposit(leaf):
            idx = manager.insert(leaf)
            with lock:
                indices.append(idx)

        threads = [threading.Thread(target=deposit, args=(i + 1,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(indices) == list(range(8))
        assert MerkleTree(4, manager.hasher, manager.tree.leaves).root() == manager.current_root()


class TestNullifierRegistry:

    def test_mark_and_query(self):
        registry = NullifierRegistry()
        assert not registry.is_spent(7)
        record = registry.mark_spent(7, root=3)
        assert registry.is_spent(7)
        assert registry.record_of(7) == record
        assert record.root == 3
        assert len(registry) == 1

    def test_double_spend(self):
        registry = NullifierRegistry()
        registry.mark_spent(7)
        with pytest.raises(DoubleSpendError) as exc:
            registry.mark_spent(7)
        assert exc.value.nullifier_hash == 7
        assert len(registry.records()) == 1

    def test_concurrent_marks_admit_exactly_one(self):
        registry = NullifierRegistry()
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def spend():
            barrier.wait()
            try:
                registry.mark_spent(42)
                outcome = "ok"
            except DoubleSpendError:
                outcome = "double"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=spend) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count("ok") == 1
        assert results.count("double") == 7
