# File: utils/__init__.py
"""Pure Python utilities for habitchain.

Submodules:
    - dt_utils: Calendar context, date normalization and arithmetic
    - math_utils: Rate rounding, safe division, clamping

Usage:
    from . import dt_utils
    from .math_utils import safe_ratio
"""

from . import dt_utils, math_utils

__all__ = ["dt_utils", "math_utils"]
