"""
Graph Validator - decides whether a proposed edge may be committed.
连线校验器 —— 判断一条待提交的边是否合法。

Two rules:
  - no self-loops (source == target)
  - no cycles: a depth-first search from the source over the existing edges
    plus the candidate edge must never re-enter a node that is still on the
    active search stack

两条规则：
  - 不允许自环（source == target）
  - 不允许成环：在「已有边 + 候选边」构成的假设图上从 source 做 DFS，
    若再次进入仍在当前搜索栈上的节点，则判定成环

The validator only sees edges, never nodes: edges that reference unknown
node IDs still take part in cycle detection.
校验器只接收边列表、不接收节点集合：引用了未知节点的边同样参与环检测。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pipeline.errors import InvalidConnectionError
from schema import ConnectionCheck, ConnectionRejection, PipelineEdge

logger = logging.getLogger(__name__)


def _build_adjacency(
    edges: Iterable[PipelineEdge],
    source_id: str,
    target_id: str,
) -> dict[str, list[str]]:
    """
    Adjacency map of the hypothetical edge set (existing edges + candidate).
    构建假设边集（已有边 + 候选边）的邻接表。
    """
    graph: dict[str, list[str]] = {}
    for edge in edges:
        graph.setdefault(edge.source, []).append(edge.target)
    graph.setdefault(source_id, []).append(target_id)
    return graph


def _has_cycle_from(start: str, graph: dict[str, list[str]]) -> bool:
    """
    Iterative DFS from `start`; True if a node on the active stack is revisited.
    从 `start` 出发的迭代式 DFS；若再次访问到仍在搜索栈上的节点则返回 True。
    迭代实现，避免长链路触发 Python 递归深度限制。
    """
    visited: set[str] = set()
    on_stack: set[str] = {start}
    # 栈元素：(节点 ID, 该节点出边的迭代器)
    stack = [(start, iter(graph.get(start, ())))]
    visited.add(start)

    while stack:
        node_id, children = stack[-1]
        child = next(children, None)
        if child is None:
            # 该节点所有出边已探索完毕，出栈
            stack.pop()
            on_stack.discard(node_id)
            continue
        if child in on_stack:
            return True
        if child in visited:
            continue
        visited.add(child)
        on_stack.add(child)
        stack.append((child, iter(graph.get(child, ()))))

    return False


def check_connection(
    source_id: str,
    target_id: str,
    existing_edges: Iterable[PipelineEdge],
) -> ConnectionCheck:
    """
    Validate a proposed edge and return a typed result.
    校验候选连线，返回类型化结果（不抛异常、无副作用）。
    """
    if source_id == target_id:
        return ConnectionCheck(
            source=source_id,
            target=target_id,
            valid=False,
            reason=ConnectionRejection.SELF_LOOP,
            message=f"Cannot connect node '{source_id}' to itself",
        )

    graph = _build_adjacency(existing_edges, source_id, target_id)
    if _has_cycle_from(source_id, graph):
        return ConnectionCheck(
            source=source_id,
            target=target_id,
            valid=False,
            reason=ConnectionRejection.CYCLE,
            message=f"Connecting '{source_id}' -> '{target_id}' would create a cycle",
        )

    return ConnectionCheck(source=source_id, target=target_id, valid=True)


def is_valid_connection(
    source_id: str,
    target_id: str,
    existing_edges: Iterable[PipelineEdge],
) -> bool:
    """
    True if `source_id -> target_id` can be added without a self-loop or cycle.
    若 `source_id -> target_id` 不构成自环且不会成环，返回 True。
    """
    return check_connection(source_id, target_id, existing_edges).valid


def ensure_valid_connection(
    source_id: str,
    target_id: str,
    existing_edges: Iterable[PipelineEdge],
) -> ConnectionCheck:
    """
    Like check_connection(), but raises InvalidConnectionError on rejection.
    与 check_connection() 相同，但校验失败时抛出 InvalidConnectionError。
    """
    check = check_connection(source_id, target_id, existing_edges)
    if not check.valid:
        logger.info("[Validator] Rejected %s -> %s (%s)", source_id, target_id, check.reason.value)
        raise InvalidConnectionError(check)
    return check
