"""
连线校验器与调度器测试：
  1. 自环 / 成环检测 (Graph Validator)
  2. Kahn 拓扑排序与确定性 (Scheduler)

运行方式:
    python -m pytest tests/test_validator_scheduler.py -v

校验器和调度器都是纯函数，测试直接构造节点 / 边列表，无需任何 Mock。
"""

from __future__ import annotations

import pytest

from pipeline.errors import CyclicOrDisconnectedError, InvalidConnectionError
from pipeline.scheduler import get_execution_order
from pipeline.validator import check_connection, ensure_valid_connection, is_valid_connection
from schema import ConnectionRejection, PipelineEdge, PipelineNode


def _node(node_id: str, kind: str = "Transformer") -> PipelineNode:
    return PipelineNode(id=node_id, kind=kind, name=node_id.title())


def _edges(*pairs: tuple[str, str]) -> list[PipelineEdge]:
    return [PipelineEdge(id=f"e{i}", source=s, target=t) for i, (s, t) in enumerate(pairs, 1)]


# ======================================================================
# Test 1: 连线校验
# ======================================================================


class TestConnectionValidation:
    """
    验证连线校验规则:
    - 任何节点连向自身都被拒绝
    - 不会成环的连线被接受
    - 已存在 b -> ... -> a 路径时，a -> b 被拒绝
    """

    @pytest.mark.parametrize("edges", [[], _edges(("a", "b")), _edges(("b", "c"), ("c", "a"))])
    def test_self_loop_always_rejected(self, edges):
        """a -> a 对任意边集都非法."""
        assert is_valid_connection("a", "a", edges) is False

    def test_accepts_first_connection(self):
        assert is_valid_connection("node1", "node2", []) is True

    def test_accepts_linear_chain_extension(self):
        """node1 -> node2 已存在时，node2 -> node3 合法."""
        assert is_valid_connection("node2", "node3", _edges(("node1", "node2"))) is True

    def test_rejects_direct_back_edge(self):
        """node2 -> node1 已存在时，node1 -> node2 会形成环."""
        assert is_valid_connection("node1", "node2", _edges(("node2", "node1"))) is False

    def test_rejects_long_back_path(self):
        """b -> c -> d -> a 已存在时，a -> b 会形成环."""
        edges = _edges(("b", "c"), ("c", "d"), ("d", "a"))
        assert is_valid_connection("a", "b", edges) is False

    def test_accepts_diamond_and_parallel_paths(self):
        """菱形结构（多条路径汇聚）不是环."""
        edges = _edges(("a", "b"), ("a", "c"), ("b", "d"))
        assert is_valid_connection("c", "d", edges) is True
        # 重复连线也不构成环
        assert is_valid_connection("a", "b", edges) is True

    def test_unknown_node_ids_still_participate(self):
        """校验器没有节点集合：引用未知节点的边同样参与环检测."""
        edges = _edges(("ghost", "x"))
        assert is_valid_connection("x", "ghost", edges) is False
        assert is_valid_connection("x", "other", edges) is True

    def test_long_chain_does_not_hit_recursion_limit(self):
        """迭代式 DFS：5000 节点长链也能正常判定."""
        n = 5000
        edges = _edges(*[(f"n{i}", f"n{i + 1}") for i in range(n)])
        assert is_valid_connection(f"n{n}", "n0", edges) is False
        assert is_valid_connection(f"n{n}", "tail", edges) is True

    def test_check_connection_reports_reason(self):
        """类型化结果：区分自环与成环."""
        loop = check_connection("a", "a", [])
        assert not loop.valid and loop.reason == ConnectionRejection.SELF_LOOP

        cycle = check_connection("a", "b", _edges(("b", "a")))
        assert not cycle.valid and cycle.reason == ConnectionRejection.CYCLE
        assert "cycle" in cycle.message

        ok = check_connection("a", "b", [])
        assert ok.valid and ok.reason is None

    def test_ensure_valid_connection_raises(self):
        with pytest.raises(InvalidConnectionError) as excinfo:
            ensure_valid_connection("a", "b", _edges(("b", "a")))
        assert excinfo.value.check.reason == ConnectionRejection.CYCLE

    def test_validator_has_no_side_effects(self):
        edges = _edges(("a", "b"))
        before = list(edges)
        is_valid_connection("b", "a", edges)
        assert edges == before, "校验不应修改传入的边列表"


# ======================================================================
# Test 2: 执行顺序
# ======================================================================


class TestExecutionOrder:
    """
    验证 Kahn 拓扑排序:
    - 线性链严格按依赖顺序
    - 多个源节点按输入顺序排列
    - 环被拒绝，不返回部分顺序
    """

    def test_linear_chain(self):
        nodes = [_node("1"), _node("2"), _node("3")]
        assert get_execution_order(nodes, _edges(("1", "2"), ("2", "3"))) == ["1", "2", "3"]

    def test_multiple_sources_before_sink(self):
        nodes = [_node("1"), _node("2"), _node("3")]
        order = get_execution_order(nodes, _edges(("1", "3"), ("2", "3")))
        assert sorted(order) == ["1", "2", "3"], "每个节点恰好出现一次"
        assert order.index("1") < order.index("3")
        assert order.index("2") < order.index("3")

    def test_sink_listed_first_in_input(self):
        """节点输入顺序与依赖方向相反时，依赖关系仍然优先."""
        nodes = [_node("3"), _node("2"), _node("1")]
        assert get_execution_order(nodes, _edges(("1", "2"), ("2", "3"))) == ["1", "2", "3"]

    def test_ties_follow_input_order(self):
        """无边时，顺序即输入顺序（而非 ID 排序）."""
        nodes = [_node("c"), _node("a"), _node("b")]
        assert get_execution_order(nodes, []) == ["c", "a", "b"]

    def test_fifo_between_ready_nodes(self):
        """
        a -> x, b -> y：种子队列为 [a, b]，x 在 a 出队后入队、y 在 b 出队后入队，
        因此顺序为 a, b, x, y（FIFO），而不是深度优先的 a, x, b, y.
        """
        nodes = [_node("a"), _node("x"), _node("b"), _node("y")]
        assert get_execution_order(nodes, _edges(("a", "x"), ("b", "y"))) == ["a", "b", "x", "y"]

    def test_isolated_node_interleaved_by_input_order(self):
        nodes = [_node("src"), _node("lonely"), _node("dst")]
        assert get_execution_order(nodes, _edges(("src", "dst"))) == ["src", "lonely", "dst"]

    def test_two_node_cycle_rejected(self):
        nodes = [_node("1"), _node("2")]
        with pytest.raises(CyclicOrDisconnectedError) as excinfo:
            get_execution_order(nodes, _edges(("1", "2"), ("2", "1")))
        assert set(excinfo.value.unscheduled) == {"1", "2"}
        assert "cycles or disconnected" in str(excinfo.value)

    def test_nodes_blocked_by_cycle_are_reported(self):
        """src 可调度，但 b 依赖于环内节点，同样无法调度."""
        nodes = [_node("src"), _node("x"), _node("y"), _node("b")]
        edges = _edges(("src", "x"), ("x", "y"), ("y", "x"), ("y", "b"))
        with pytest.raises(CyclicOrDisconnectedError) as excinfo:
            get_execution_order(nodes, edges)
        assert excinfo.value.unscheduled == ["x", "y", "b"]

    def test_edges_with_missing_endpoint_ignored(self):
        nodes = [_node("1"), _node("2")]
        edges = _edges(("1", "2"), ("ghost", "1"), ("2", "ghost"))
        assert get_execution_order(nodes, edges) == ["1", "2"]

    def test_idempotent(self):
        nodes = [_node("d"), _node("a"), _node("c"), _node("b")]
        edges = _edges(("a", "b"), ("a", "c"), ("c", "d"), ("b", "d"))
        first = get_execution_order(nodes, edges)
        second = get_execution_order(nodes, edges)
        assert first == second == ["a", "b", "c", "d"]

    def test_empty_graph(self):
        assert get_execution_order([], []) == []
