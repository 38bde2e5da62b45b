"""Core domain types and logic."""

from .config import Config, ConfigError, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result
from .terms import Atom, TermError, consult, consult_file

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    # terms
    "Atom",
    "TermError",
    "consult",
    "consult_file",
]
