"""folio-analytics: portfolio risk, performance and rebalancing analytics."""

__version__ = "0.1.0"
