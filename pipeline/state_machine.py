"""
Node State Machine - Validates and enforces node status transitions.
节点状态机 —— 校验并强制执行节点状态的合法转移。

The transition table is the single source of truth for what status changes
are legal during a run. Any invalid transition raises InvalidTransitionError.
转移表是运行期间合法状态变化的唯一权威来源，任何非法转移都会抛出 InvalidTransitionError。

Transition graph:
转移图：
    IDLE ──> RUNNING ──> COMPLETED   (happy path / 正常路径)
                     ──> ERROR       (step failure / 节点执行失败)
    reset(): any status ──> IDLE     (start of every run / 每次运行开始时)
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from schema import NodeStatus, PipelineNode

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    """
    Raised when an illegal status transition is attempted.
    当尝试非法状态转移时抛出此异常。
    """
    pass


VALID_TRANSITIONS: dict[NodeStatus, set[NodeStatus]] = {
    NodeStatus.IDLE:      {NodeStatus.RUNNING},
    NodeStatus.RUNNING:   {NodeStatus.COMPLETED, NodeStatus.ERROR},
    # 终态，只能通过 reset() 回到 IDLE
    NodeStatus.COMPLETED: set(),
    NodeStatus.ERROR:     set(),
}


class NodeStateMachine:
    """
    Validates and applies node status transitions.
    校验并应用节点状态转移。

    `transition()`:
      1. Checks the VALID_TRANSITIONS table
      2. Applies the change to the node
      3. Fires an optional callback for UI/logging
    """

    def __init__(self, on_transition: Callable[[str, NodeStatus, NodeStatus], None] | None = None):
        """
        Args:
            on_transition: Optional callback(node_id, old_status, new_status).
                           可选回调 callback(node_id, 旧状态, 新状态)。
        """
        self._on_transition = on_transition

    def can_transition(self, node: PipelineNode, new_status: NodeStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(node.status, set())

    def transition(self, node: PipelineNode, new_status: NodeStatus) -> None:
        """
        Apply a status transition. Raises InvalidTransitionError if illegal.
        应用状态转移。若转移非法则抛出 InvalidTransitionError。
        """
        if not self.can_transition(node, new_status):
            raise InvalidTransitionError(
                f"Node '{node.id}': cannot transition from {node.status.value} to {new_status.value}. "
                f"Valid targets: {sorted(s.value for s in VALID_TRANSITIONS.get(node.status, set()))}"
            )
        self._apply(node, new_status)

    def reset(self, node: PipelineNode) -> None:
        """
        Force a node back to IDLE, whatever its current status.
        将节点强制重置为 IDLE（无论当前状态），在每次运行开始时调用。
        """
        if node.status != NodeStatus.IDLE:
            self._apply(node, NodeStatus.IDLE)

    def _apply(self, node: PipelineNode, new_status: NodeStatus) -> None:
        old_status = node.status
        node.status = new_status

        logger.debug("[SM] %s: %s -> %s", node.id, old_status.value, new_status.value)

        if self._on_transition:
            try:
                self._on_transition(node.id, old_status, new_status)
            except Exception:
                # UI 回调异常不能影响主流程
                logger.exception("[SM] on_transition callback failed for %s", node.id)


def format_status_counts(nodes: Iterable[PipelineNode]) -> str:
    """
    Status tally in first-seen order, e.g. "2 completed, 1 idle".
    按首次出现顺序统计各状态的节点数。
    """
    counts: dict[str, int] = {}
    for n in nodes:
        counts[n.status.value] = counts.get(n.status.value, 0) + 1
    return ", ".join(f"{v} {k}" for k, v in counts.items())
