"""Workflow registry and composition."""

from jixoflow.workflow.args import ArgSpec, coerce_value, parse_args, parse_argv
from jixoflow.workflow.definition import (
    ExecutionHandle,
    SubflowRef,
    WorkflowDefinition,
    create_router,
    define_workflow,
)
from jixoflow.workflow.help import render_help

__all__ = [
    "ArgSpec",
    "ExecutionHandle",
    "SubflowRef",
    "WorkflowDefinition",
    "coerce_value",
    "create_router",
    "define_workflow",
    "parse_args",
    "parse_argv",
    "render_help",
]
