"""Error handling for chronomachines.

- RetryError/RetryErrorKind: Terminal retry failures with attempt accounting
- PolicyMissingError: Lookup failure for named policies
- Result/Ok/Err: Success/failure union returned by every retry entry point
"""

from .errors import PolicyMissingError, RetryError, RetryErrorKind
from .result import Err, Ok, Result

__all__ = [
    "RetryError", "RetryErrorKind", "PolicyMissingError",
    "Result", "Ok", "Err",
]
