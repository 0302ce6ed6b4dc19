"""
edgecli - Command Line Interface for the edge platform management API.

Command structure: edgecli <resource> <action> [options]
"""

__version__ = "0.4.0"
