"""
PipelineGraph - the editor's node/edge store.
PipelineGraph —— 编辑器侧的节点/边存储。

The engine functions (validator, scheduler, executor) are stateless and take
full node/edge snapshots on every call. PipelineGraph is the caller side of
that contract: it generates IDs, commits edges after validation, and hands
its current lists to the engine.

引擎函数（校验器、调度器、执行器）本身无状态，每次调用都接收完整的节点/边快照。
PipelineGraph 是这一约定的调用方：负责生成 ID、在校验通过后提交边，并把当前列表交给引擎。

ID counters are per instance, never module globals.
ID 计数器属于实例，而非模块级全局变量。
"""

from __future__ import annotations

import logging

import config
from pipeline.errors import InvalidConnectionError
from pipeline.scheduler import get_execution_order
from pipeline.state_machine import format_status_counts
from pipeline.validator import ensure_valid_connection
from schema import (
    DEFAULT_SOURCE_HANDLE,
    DEFAULT_TARGET_HANDLE,
    ConnectionCheck,
    ConnectionRejection,
    NodeKind,
    PipelineEdge,
    PipelineNode,
    Position,
)

logger = logging.getLogger(__name__)


class PipelineGraph:
    """
    Mutable collection of pipeline nodes and edges.
    可变的流水线节点与边集合。

    `nodes` is a plain list that is mutated in place, so the executor sees
    removals made while it walks the order.
    `nodes` 是原地修改的普通列表，执行器在运行过程中能看到节点的移除。
    """

    def __init__(self, enforce_validation: bool | None = None):
        self.nodes: list[PipelineNode] = []
        self.edges: list[PipelineEdge] = []
        # None 时读取配置；False 对应「只在运行时由调度器发现非法图」的弱校验模式
        self.enforce_validation = (
            config.ENFORCE_CONNECTION_VALIDATION if enforce_validation is None else enforce_validation
        )
        self._node_counter = 0
        self._edge_counter = 0

    # ------------------------------------------------------------------
    # Node queries / mutations
    # 节点查询与变更
    # ------------------------------------------------------------------

    def get_node(self, node_id: str) -> PipelineNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def add_node(
        self,
        kind: NodeKind | str,
        position: tuple[float, float] = (0.0, 0.0),
        name: str | None = None,
    ) -> PipelineNode:
        """
        Place a new node. Default display name is "<kind> <n>".
        放置新节点，默认显示名为 "<类型名> <序号>"。

        The kind tag is the catalog entry's *name*, as shown in the palette.
        kind 标签取目录项的 name（与节点面板拖放时的行为一致）。
        """
        self._node_counter += 1
        kind_tag = kind.name if isinstance(kind, NodeKind) else kind
        node = PipelineNode(
            id=f"node-{self._node_counter}",
            kind=kind_tag,
            name=name or f"{kind_tag} {self._node_counter}",
            position=Position(x=position[0], y=position[1]),
        )
        self.nodes.append(node)
        logger.info("[Graph] Node added: %s (%s) '%s'", node.id, node.kind, node.name)
        return node

    def remove_node(self, node_id: str) -> bool:
        """
        Remove a node together with every edge attached to it.
        移除节点及其所有关联边。
        """
        node = self.get_node(node_id)
        if node is None:
            logger.warning("[Graph] Cannot remove node '%s': not found", node_id)
            return False
        self.nodes.remove(node)
        self.edges = [e for e in self.edges if e.source != node_id and e.target != node_id]
        logger.info("[Graph] Node removed: %s", node_id)
        return True

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node.position = Position(x=x, y=y)
        return True

    # ------------------------------------------------------------------
    # Edge mutations
    # 边的变更
    # ------------------------------------------------------------------

    def connect(
        self,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> PipelineEdge:
        """
        Validate and commit a new edge.
        校验并提交一条新边。

        Raises InvalidConnectionError for unknown endpoints and, when
        validation is enforced, for self-loops and cycles. Nothing is
        committed on rejection. An identical existing connection is returned
        as-is instead of being duplicated.

        端点不存在时抛出 InvalidConnectionError；启用校验时，自环与成环同样抛出。
        被拒绝时不提交任何内容。完全相同的连线已存在时直接返回原边，不重复添加。
        """
        for endpoint in (source, target):
            if self.get_node(endpoint) is None:
                raise InvalidConnectionError(ConnectionCheck(
                    source=source,
                    target=target,
                    valid=False,
                    reason=ConnectionRejection.UNKNOWN_NODE,
                    message=f"Node '{endpoint}' does not exist",
                ))

        source_handle = source_handle or DEFAULT_SOURCE_HANDLE
        target_handle = target_handle or DEFAULT_TARGET_HANDLE
        key = (source, target, source_handle, target_handle)
        for existing in self.edges:
            if (existing.source, existing.target, existing.source_handle, existing.target_handle) == key:
                logger.debug("[Graph] Edge %s->%s already exists, skipping", source, target)
                return existing

        if self.enforce_validation:
            ensure_valid_connection(source, target, self.edges)

        self._edge_counter += 1
        edge = PipelineEdge(
            id=f"edge-{self._edge_counter}",
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self.edges.append(edge)
        logger.info("[Graph] Edge added: %s (%s -> %s)", edge.id, source, target)
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        before = len(self.edges)
        self.edges = [e for e in self.edges if e.id != edge_id]
        removed = len(self.edges) != before
        if removed:
            logger.info("[Graph] Edge removed: %s", edge_id)
        return removed

    # ------------------------------------------------------------------
    # Engine helpers
    # 引擎辅助
    # ------------------------------------------------------------------

    def execution_order(self) -> list[str]:
        return get_execution_order(self.nodes, self.edges)

    def summary(self) -> str:
        """
        One-line summary for logging, e.g. Pipeline[3 nodes, 2 edges: 2 completed, 1 idle]
        生成单行摘要，用于日志输出。
        """
        return f"Pipeline[{len(self.nodes)} nodes, {len(self.edges)} edges: {format_status_counts(self.nodes)}]"
