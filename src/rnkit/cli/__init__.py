"""
rnkit CLI package.

Provides the command-line interface with auto-discovery of commands
from subfolders (project/, plugin/, module/, pack/).

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter
from ._args import (
    add_capability_ids_arg,
    add_dry_run_flag,
    add_json_flag,
    add_option_flag,
    add_project_root_flag,
    add_standard_flags,
    add_verbose_flag,
    parse_options,
)
from ._utils import (
    build_context,
    get_project_root,
    list_capabilities,
    print_batch,
    print_result,
    run_capability_batch,
    setup_logging,
    unique,
)

__all__ = [
    # Output formatting
    "OutputFormatter",
    # Argument helpers
    "add_capability_ids_arg",
    "add_dry_run_flag",
    "add_json_flag",
    "add_option_flag",
    "add_project_root_flag",
    "add_standard_flags",
    "add_verbose_flag",
    "parse_options",
    # Utilities
    "build_context",
    "get_project_root",
    "list_capabilities",
    "print_batch",
    "print_result",
    "run_capability_batch",
    "setup_logging",
    "unique",
]
