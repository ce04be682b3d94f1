"""
Onchange Toolchain Package.

Wraps the go command: package metadata, build, install and test.
Requires Python 3.11+.
"""

from toolchain.coordinator import BuildCoordinator
from toolchain.go_tool import GoTool
from toolchain.models import ALL_PACKAGES, BuildResult, PackageNode

__all__ = [
    "ALL_PACKAGES",
    "BuildCoordinator",
    "BuildResult",
    "GoTool",
    "PackageNode",
]
