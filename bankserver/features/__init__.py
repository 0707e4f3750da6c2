from .metrics import start_metrics_server

__all__ = ["start_metrics_server"]
