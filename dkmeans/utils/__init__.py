from .logging import RankLogger, format_run_prefix, setup_logger

__all__ = ["RankLogger", "format_run_prefix", "setup_logger"]
