from . import functions
from .functions import account_ready

__all__ = ["functions", "account_ready"]
