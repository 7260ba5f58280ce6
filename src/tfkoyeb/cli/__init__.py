from tfkoyeb.cli.main import build_parser, resolve_command, wait_command

__all__ = ["build_parser", "resolve_command", "wait_command"]
