"""
Pipeline errors.
流水线引擎的异常类型。

  - InvalidConnectionError:    proposed edge is a self-loop / would close a cycle
  - CyclicOrDisconnectedError: scheduler cannot order every node
  - EmptyPipelineError:        run requested with zero nodes
  - RunInProgressError:        run requested while another run is active
  - DuplicateOrderEntryError:  execute() given an order that repeats a node ID

  - InvalidConnectionError:    连线是自环或会成环（非致命，调用方丢弃该连线即可）
  - CyclicOrDisconnectedError: 调度器无法为所有节点给出全序（本次运行被拒绝）
  - EmptyPipelineError:        没有任何节点时请求运行
  - RunInProgressError:        已有运行进行中时再次请求运行
  - DuplicateOrderEntryError:  传给 execute() 的顺序中有重复节点 ID
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schema import ConnectionCheck


class PipelineError(Exception):
    """Base class for all pipeline engine errors.
    所有流水线引擎异常的基类。"""


class InvalidConnectionError(PipelineError):
    """
    Raised when a proposed edge is rejected by the validator.
    当连线被校验器拒绝时抛出。携带类型化的 ConnectionCheck 供展示层使用。
    """

    def __init__(self, check: ConnectionCheck):
        super().__init__(check.message or f"Invalid connection {check.source} -> {check.target}")
        self.check = check


class CyclicOrDisconnectedError(PipelineError):
    """
    Raised when no total execution order covers all nodes.
    当无法为全部节点给出执行全序时抛出（存在环，或节点被环阻断）。
    """

    def __init__(self, unscheduled: list[str]):
        super().__init__("Pipeline contains cycles or disconnected nodes")
        self.unscheduled = unscheduled  # 未能进入执行序列的节点 ID


class EmptyPipelineError(PipelineError):
    """Raised before a run starts if the pipeline has no nodes."""

    def __init__(self) -> None:
        super().__init__("Please add at least one node to the pipeline.")


class RunInProgressError(PipelineError):
    """Raised when a run is requested while another one is still active."""


class DuplicateOrderEntryError(PipelineError):
    """Raised when an execution order lists the same node ID more than once."""

    def __init__(self, duplicates: list[str]):
        super().__init__(f"Execution order lists node(s) more than once: {', '.join(duplicates)}")
        self.duplicates = duplicates
