"""
编辑器图存储 (PipelineGraph) 测试：
  1. 节点增删 / ID 生成
  2. 连线提交：端点校验、去重、默认端口
  3. 连线时校验 vs. 运行时才发现非法图（两种模式都测试）

运行方式:
    python -m pytest tests/test_graph.py -v
"""

from __future__ import annotations

import pytest

from performers import SimulatedStepPerformer
from pipeline.errors import CyclicOrDisconnectedError, InvalidConnectionError
from pipeline.executor import PipelineExecutor
from pipeline.graph import PipelineGraph
from schema import ConnectionRejection, NodeKind, NodeStatus


def _linear_graph(enforce_validation: bool = True) -> PipelineGraph:
    graph = PipelineGraph(enforce_validation=enforce_validation)
    a = graph.add_node(NodeKind(id="data-source", name="Data Source"))
    b = graph.add_node("Transformer")
    c = graph.add_node("Sink", name="Warehouse")
    graph.connect(a.id, b.id)
    graph.connect(b.id, c.id)
    return graph


# ======================================================================
# Test 1: 节点
# ======================================================================


class TestNodes:

    def test_ids_and_default_names(self):
        graph = PipelineGraph()
        n1 = graph.add_node(NodeKind(id="model", name="Model"), position=(10, 20))
        n2 = graph.add_node("Sink")

        assert (n1.id, n2.id) == ("node-1", "node-2")
        assert n1.name == "Model 1" and n2.name == "Sink 2"
        assert n1.kind == "Model", "kind 标签取目录项的 name"
        assert (n1.position.x, n1.position.y) == (10, 20)
        assert n1.status == NodeStatus.IDLE

    def test_counters_are_per_graph(self):
        first, second = PipelineGraph(), PipelineGraph()
        first.add_node("Model")
        assert second.add_node("Model").id == "node-1", "ID 计数器不应跨实例共享"

    def test_unknown_kind_accepted(self):
        node = PipelineGraph().add_node("Custom Thing")
        assert node.kind == "Custom Thing"

    def test_remove_node_drops_attached_edges(self):
        graph = _linear_graph()
        assert graph.remove_node("node-2") is True
        assert [n.id for n in graph.nodes] == ["node-1", "node-3"]
        assert graph.edges == []
        assert graph.remove_node("node-2") is False

    def test_ids_not_reused_after_removal(self):
        graph = _linear_graph()
        graph.remove_node("node-3")
        assert graph.add_node("Sink").id == "node-4"

    def test_move_node(self):
        graph = _linear_graph()
        assert graph.move_node("node-1", 5, 6) is True
        assert graph.get_node("node-1").position.y == 6
        assert graph.move_node("missing", 0, 0) is False


# ======================================================================
# Test 2: 连线
# ======================================================================


class TestConnections:

    def test_default_handles_and_ids(self):
        graph = _linear_graph()
        first = graph.edges[0]
        assert first.id == "edge-1"
        assert (first.source_handle, first.target_handle) == ("output", "input")

    def test_identical_connection_not_duplicated(self):
        graph = _linear_graph()
        again = graph.connect("node-1", "node-2")
        assert again.id == "edge-1"
        assert len(graph.edges) == 2

    def test_different_handles_are_distinct_edges(self):
        graph = _linear_graph()
        graph.connect("node-1", "node-2", source_handle="stats")
        assert len(graph.edges) == 3

    def test_unknown_endpoint_rejected(self):
        graph = _linear_graph()
        with pytest.raises(InvalidConnectionError) as excinfo:
            graph.connect("node-1", "node-99")
        assert excinfo.value.check.reason == ConnectionRejection.UNKNOWN_NODE
        assert len(graph.edges) == 2

    def test_remove_edge(self):
        graph = _linear_graph()
        assert graph.remove_edge("edge-1") is True
        assert graph.remove_edge("edge-1") is False
        assert [e.id for e in graph.edges] == ["edge-2"]

    def test_summary(self):
        graph = _linear_graph()
        assert graph.summary() == "Pipeline[3 nodes, 2 edges: 3 idle]"


# ======================================================================
# Test 3: 校验时机（连线时 vs. 运行时）
# ======================================================================


class TestValidationTiming:
    """
    默认在连线时校验：非法连线直接被拒绝，图永远保持无环。
    关闭校验时：非法连线被提交，直到运行时才由调度器以 CyclicOrDisconnected 拒绝。
    """

    def test_enforced_rejects_self_loop_and_cycle(self):
        graph = _linear_graph(enforce_validation=True)

        with pytest.raises(InvalidConnectionError) as loop:
            graph.connect("node-2", "node-2")
        assert loop.value.check.reason == ConnectionRejection.SELF_LOOP

        with pytest.raises(InvalidConnectionError) as cycle:
            graph.connect("node-3", "node-1")
        assert cycle.value.check.reason == ConnectionRejection.CYCLE

        assert len(graph.edges) == 2, "被拒绝的连线不应提交"
        assert graph.execution_order() == ["node-1", "node-2", "node-3"]

    @pytest.mark.asyncio
    async def test_unenforced_cycle_caught_at_run_time(self):
        graph = _linear_graph(enforce_validation=False)
        graph.connect("node-3", "node-1")
        assert len(graph.edges) == 3, "关闭校验时非法连线会被提交"

        executor = PipelineExecutor(performer=SimulatedStepPerformer(latency=0))
        with pytest.raises(CyclicOrDisconnectedError):
            await executor.run(graph.nodes, graph.edges)
        assert all(n.status == NodeStatus.IDLE for n in graph.nodes)

    @pytest.mark.asyncio
    async def test_graph_runs_end_to_end(self):
        graph = _linear_graph()
        executor = PipelineExecutor(performer=SimulatedStepPerformer(latency=0))

        result = await executor.run(graph.nodes, graph.edges)

        assert result.success is True
        assert [log.message for log in result.logs] == [
            'Data Source "Data Source 1" processed 100 records',
            'Transformer "Transformer 2" applied transformation',
            'Sink "Warehouse" saved results',
        ]
        assert "3 completed" in graph.summary()
