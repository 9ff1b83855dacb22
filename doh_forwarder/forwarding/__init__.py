from .forwarder import build_target_url, forward_request, prepare_headers

__all__ = ["build_target_url", "forward_request", "prepare_headers"]
