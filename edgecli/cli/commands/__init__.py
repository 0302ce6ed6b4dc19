from . import config_cmd, logging_cmd, stats, vcl, version

__all__ = ['config_cmd', 'logging_cmd', 'stats', 'vcl', 'version']
