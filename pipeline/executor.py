"""
Pipeline Executor - Runs a pipeline node by node in scheduler order.
流水线执行驱动 —— 按调度顺序逐个执行节点。

One run:
  1. Reject empty pipelines (EmptyPipelineError) and overlapping runs
  2. Ask the scheduler for the order once (CyclicOrDisconnectedError propagates)
  3. Clear the log, reset every node to IDLE, mark the run active
  4. For each node ID, strictly one at a time:
       RUNNING -> await performer -> log entry + COMPLETED
       on failure: ERROR + one "System" log entry, stop the walk
  5. Mark the run inactive

一次运行：
  1. 拒绝空流水线（EmptyPipelineError）及重叠运行
  2. 向调度器获取一次执行顺序（CyclicOrDisconnectedError 直接抛给调用方）
  3. 清空日志，将所有节点重置为 IDLE，标记运行中
  4. 严格串行地处理每个节点：
       RUNNING -> 等待 performer -> 写日志 + COMPLETED
       失败时：ERROR + 一条 "System" 日志，立即停止后续节点（fail-fast，无重试、无回滚）
  5. 标记运行结束

Nodes that disappeared from the live node list by the time the walk reaches
them are skipped silently. After every state mutation the executor emits an
"update" event carrying a full RunSnapshot.
执行到某节点时若它已从实时节点列表中移除，则静默跳过（不写日志）。
每次状态变更后，执行器都会发出携带完整 RunSnapshot 的 "update" 事件。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Callable

from performers.base import BaseStepPerformer
from performers.simulated import SimulatedStepPerformer
from pipeline.errors import DuplicateOrderEntryError, EmptyPipelineError, RunInProgressError
from pipeline.scheduler import get_execution_order
from pipeline.state_machine import NodeStateMachine, format_status_counts
from schema import (
    SYSTEM_NODE_NAME,
    ExecutionLog,
    NodeStatus,
    PipelineEdge,
    PipelineNode,
    RunResult,
    RunSnapshot,
)

logger = logging.getLogger(__name__)


class PipelineExecutor:
    """
    Sequential execution driver for one pipeline.
    单条流水线的串行执行驱动。

    The executor is the only writer of node status and of the log sequence
    while a run is active. Callers must not edit nodes or edges meanwhile.
    运行期间，执行器是节点状态和日志序列的唯一写入者；调用方此时不应修改节点或边。
    """

    def __init__(
        self,
        performer: BaseStepPerformer | None = None,
        on_event: Callable[[str, Any], None] | None = None,
    ):
        self._performer = performer or SimulatedStepPerformer()
        self._on_event = on_event
        self._sm = NodeStateMachine(on_transition=self._on_node_transition)
        self._nodes: Sequence[PipelineNode] = ()
        self._logs: list[ExecutionLog] = []
        self._is_running = False

    # ------------------------------------------------------------------
    # State accessors
    # 状态访问
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def logs(self) -> list[ExecutionLog]:
        return list(self._logs)

    def snapshot(self) -> RunSnapshot:
        """
        Current status of every node plus the full log.
        当前所有节点状态 + 完整日志的快照。
        """
        return RunSnapshot(
            statuses={n.id: n.status for n in self._nodes},
            logs=list(self._logs),
            is_running=self._is_running,
        )

    # ------------------------------------------------------------------
    # Main entry points
    # 主入口
    # ------------------------------------------------------------------

    async def run(self, nodes: Sequence[PipelineNode], edges: Sequence[PipelineEdge]) -> RunResult:
        """
        Schedule and execute the pipeline.
        调度并执行整条流水线。

        Raises EmptyPipelineError / RunInProgressError / CyclicOrDisconnectedError
        before anything is mutated. Step failures never escape.
        上述三类异常在任何状态变更之前抛出；节点执行失败不会向外抛出。
        """
        self._check_can_start(nodes)
        order = get_execution_order(nodes, edges)
        return await self.execute(order, nodes)

    async def execute(self, order: Sequence[str], nodes: Sequence[PipelineNode]) -> RunResult:
        """
        Walk an already computed order over the live `nodes` sequence.
        在实时节点序列 `nodes` 上按给定顺序执行。

        IDs missing from `nodes` are skipped; an ID listed twice is rejected
        with DuplicateOrderEntryError before anything is mutated.
        """
        self._check_can_start(nodes)
        self._check_order(order)

        self._nodes = nodes
        self._logs = []
        for node in nodes:
            self._sm.reset(node)
        self._is_running = True
        logger.info("[Executor] Run started: %d node(s), order=%s", len(order), " -> ".join(order))
        self._emit("run_started", {"order": list(order)})
        self._publish()

        failed_node_id: str | None = None
        try:
            for node_id in order:
                node = self._find_node(node_id)
                if node is None:
                    # 节点已被移除：静默跳过，不写日志
                    logger.info("[Executor] Node %s no longer exists, skipping", node_id)
                    self._emit("node_skipped", {"node_id": node_id})
                    continue

                if not await self._run_node(node):
                    failed_node_id = node.id
                    break
        finally:
            self._is_running = False
            logger.info(
                "[Executor] Run finished (%s). %s",
                "failed at " + failed_node_id if failed_node_id else "success",
                self._summary(),
            )
            self._emit("run_finished", {"success": failed_node_id is None, "failed_node_id": failed_node_id})
            self._publish()

        return RunResult(
            order=list(order),
            success=failed_node_id is None,
            failed_node_id=failed_node_id,
            statuses={n.id: n.status for n in self._nodes},
            logs=list(self._logs),
        )

    # ------------------------------------------------------------------
    # Node execution
    # 节点执行
    # ------------------------------------------------------------------

    async def _run_node(self, node: PipelineNode) -> bool:
        """
        Execute one node. Returns False when the step failed.
        执行单个节点；执行失败时返回 False。
        """
        self._sm.transition(node, NodeStatus.RUNNING)
        self._emit("node_running", {"node": node})

        try:
            message = await self._performer.perform(node.id, node.name, node.kind)
            if not isinstance(message, str):
                raise TypeError(f"step returned {type(message).__name__}, expected str")
        except Exception as exc:
            error_text = str(exc) or exc.__class__.__name__
            logger.warning("[Executor] Node %s (%s) failed: %s", node.id, node.name, error_text)
            self._sm.transition(node, NodeStatus.ERROR)
            self._append_log(ExecutionLog(
                node_id="",
                node_name=SYSTEM_NODE_NAME,
                message=f"Error: {error_text}",
            ))
            self._emit("node_failed", {"node": node, "error": error_text})
            return False

        self._append_log(ExecutionLog(node_id=node.id, node_name=node.name, message=message))
        self._sm.transition(node, NodeStatus.COMPLETED)
        self._emit("node_completed", {"node": node, "message": message})
        return True

    # ------------------------------------------------------------------
    # Helpers
    # 辅助方法
    # ------------------------------------------------------------------

    def _check_can_start(self, nodes: Sequence[PipelineNode]) -> None:
        if self._is_running:
            raise RunInProgressError("A pipeline run is already in progress")
        if not nodes:
            raise EmptyPipelineError()

    def _check_order(self, order: Sequence[str]) -> None:
        seen: set[str] = set()
        duplicates: list[str] = []
        for node_id in order:
            if node_id in seen and node_id not in duplicates:
                duplicates.append(node_id)
            seen.add(node_id)
        if duplicates:
            raise DuplicateOrderEntryError(duplicates)

    def _find_node(self, node_id: str) -> PipelineNode | None:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def _append_log(self, entry: ExecutionLog) -> None:
        self._logs.append(entry)
        self._publish()

    def _summary(self) -> str:
        return f"Pipeline[{len(self._nodes)} nodes: {format_status_counts(self._nodes)}]"

    # ------------------------------------------------------------------
    # Event helpers
    # 事件辅助方法
    # ------------------------------------------------------------------

    def _emit(self, event: str, data: Any) -> None:
        if self._on_event is None:
            return
        try:
            self._on_event(event, data)
        except Exception:
            # UI 回调异常不能中断运行
            logger.exception("[Executor] on_event callback failed for '%s'", event)

    def _publish(self) -> None:
        self._emit("update", self.snapshot())

    def _on_node_transition(self, node_id: str, old: NodeStatus, new: NodeStatus) -> None:
        """
        Callback from the state machine: every status change is a mutation,
        so a fresh snapshot goes out.
        状态机转移回调：每次状态变化都推送一次最新快照。
        """
        self._emit("node_transition", {"node_id": node_id, "from": old.value, "to": new.value})
        self._publish()
