"""Helper modules for the resilient fetcher."""

from .attempt import AttemptOutcome, FetchAttempt
from .response_classifier import read_option_chain_payload, validate_option_chain_payload

__all__ = [
    "AttemptOutcome",
    "FetchAttempt",
    "read_option_chain_payload",
    "validate_option_chain_payload",
]
