"""pmm - market-making quoting engine for binary-outcome markets."""

__version__ = "0.1.0"
