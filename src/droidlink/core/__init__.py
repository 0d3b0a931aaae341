"""Owner-context state and the connection orchestrator."""

from droidlink.core.dispatch import CompletionQueue, WorkerPool
from droidlink.core.log_sink import LogEntry, LogSink
from droidlink.core.orchestrator import ConnectionOrchestrator, Operation, OperationName
from droidlink.core.registry import DeviceRegistry

__all__ = [
    "CompletionQueue",
    "ConnectionOrchestrator",
    "DeviceRegistry",
    "LogEntry",
    "LogSink",
    "Operation",
    "OperationName",
    "WorkerPool",
]
