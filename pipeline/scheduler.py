"""
Scheduler - derives the execution order of a pipeline.
调度器 —— 推导流水线的执行顺序。

Kahn's algorithm (breadth-first topological sort):
  1. Build source -> [targets] from edges whose endpoints both exist
  2. Count in-degrees (0 for nodes without incoming edges)
  3. Seed a FIFO queue with every zero in-degree node, in input order
  4. Pop the front, emit it, decrement its targets; a target is appended
     to the back of the queue the instant its in-degree reaches 0
  5. If fewer nodes were emitted than given, raise CyclicOrDisconnectedError

Kahn 算法（广度优先拓扑排序）：
  1. 仅使用两端节点都存在的边构建邻接表，其余边静默忽略
  2. 统计入度（无入边的节点入度为 0）
  3. 按输入顺序将所有入度为 0 的节点放入 FIFO 队列
  4. 弹出队首节点加入结果，目标节点入度减 1，降为 0 时立即追加到队尾
  5. 若输出数量少于节点数量，抛出 CyclicOrDisconnectedError，不返回部分顺序

Ties are broken by the iteration order of `nodes`, never by ID or name: the
same node/edge lists always produce the same order.
并列节点的先后完全由 `nodes` 的输入顺序决定（而非 ID 或名称），
相同输入必然得到相同输出。
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence

from pipeline.errors import CyclicOrDisconnectedError
from schema import PipelineEdge, PipelineNode

logger = logging.getLogger(__name__)


def get_execution_order(
    nodes: Sequence[PipelineNode],
    edges: Sequence[PipelineEdge],
) -> list[str]:
    """
    Return node IDs in a valid execution order.
    返回节点 ID 的合法执行顺序。

    Raises CyclicOrDisconnectedError when no total order covers all nodes.
    若无法覆盖全部节点，抛出 CyclicOrDisconnectedError。
    """
    node_ids = {n.id for n in nodes}
    in_degree: dict[str, int] = {n.id: 0 for n in nodes}
    graph: dict[str, list[str]] = {n.id: [] for n in nodes}

    for e in edges:
        if e.source in node_ids and e.target in node_ids:
            graph[e.source].append(e.target)
            in_degree[e.target] += 1
        else:
            logger.debug("[Scheduler] Ignoring edge %s (%s -> %s): endpoint missing", e.id, e.source, e.target)

    # 按 nodes 的输入顺序播种队列（保证确定性）
    queue = deque(n.id for n in nodes if in_degree[n.id] == 0)
    seeded: set[str] = set(queue)
    order: list[str] = []

    while queue:
        nid = queue.popleft()
        order.append(nid)
        for target in graph[nid]:
            in_degree[target] -= 1
            if in_degree[target] == 0 and target not in seeded:
                seeded.add(target)
                queue.append(target)

    if len(order) != len(nodes):
        scheduled = set(order)
        unscheduled = [n.id for n in nodes if n.id not in scheduled]
        logger.warning("[Scheduler] Cycle detected! Unscheduled nodes: %s", ", ".join(unscheduled))
        raise CyclicOrDisconnectedError(unscheduled)

    logger.debug("[Scheduler] Execution order: %s", " -> ".join(order))
    return order
