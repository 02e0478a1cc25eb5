from .window import WindowBuffer  # re-export convenience
from .labeler import calculate_opt
from .features import derive_features
from .evaluate import check_error

__all__ = [
    "WindowBuffer",
    "calculate_opt",
    "derive_features",
    "check_error",
]
