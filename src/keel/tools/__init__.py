"""Host tools."""

from .registry import ToolDescriptor, ToolRegistry
from .shell import ShellInput, create_shell_tool

__all__ = ["ShellInput", "ToolDescriptor", "ToolRegistry", "create_shell_tool"]
