from .retry import compute_backoff, with_retry
from .timeout import with_timeout

__all__ = ["compute_backoff", "with_retry", "with_timeout"]
