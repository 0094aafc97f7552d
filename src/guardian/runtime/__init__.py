"""Workflow runtime: session, rate limiting, readiness, runs."""

from .driver import RunDriver
from .invoker import ToolInvoker
from .limiter import RateLimiter
from .readiness import ReadinessWaiter
from .workflow import REQUIRED_TOOLS, WorkflowRun, WorkflowStep

__all__ = [
    "REQUIRED_TOOLS",
    "RateLimiter",
    "ReadinessWaiter",
    "RunDriver",
    "ToolInvoker",
    "WorkflowRun",
    "WorkflowStep",
]
