import logging

import attrs

from wellcheck.constants import Constants

__all__ = ["Config"]


@attrs.frozen
class Config:
    """Well evaluation run configuration."""

    write_messages: bool = True
    """
    Whether closure decisions are reported through the deferred logger.

    Warnings about unsupported features are always reported.
    """
    constants: Constants = attrs.field(factory=Constants)
    """Constants and sentinels used during evaluation."""
    log_level: int = attrs.field(
        default=logging.INFO, validator=attrs.validators.ge(0)
    )
    """Level at which `info` records of the deferred logger are replayed (default `logging.INFO`)."""
