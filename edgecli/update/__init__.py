"""Self-update: release lookup, download and executable replacement."""
from .versioner import Versioner, GitHubVersioner, check, is_newer, parse_version
from .replace import (
    ReplacementStrategy, PosixRenameStrategy, WindowsRenameStrategy,
    ReplacementError, select_strategy, copy_file,
)
from .executor import SelfUpdater, current_executable

__all__ = [
    'Versioner', 'GitHubVersioner', 'check', 'is_newer', 'parse_version',
    'ReplacementStrategy', 'PosixRenameStrategy', 'WindowsRenameStrategy',
    'ReplacementError', 'select_strategy', 'copy_file',
    'SelfUpdater', 'current_executable',
]
