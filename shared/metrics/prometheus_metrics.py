"""Prometheus metrics definitions and helpers.

Provides metric definitions for account, profile and favorites operations.
"""

from functools import lru_cache
from typing import Callable

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class AccountMetrics:
    """Account and favorites sync metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize account metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Auth attempts
        self.auth_attempts = Counter(
            "travelbud_auth_attempts_total",
            "Registration and login attempts",
            ["operation", "outcome"],
            registry=registry,
        )

        # Profile and preference writes
        self.profile_mutations = Counter(
            "travelbud_profile_mutations_total",
            "Profile and preference mutations",
            ["operation", "outcome"],
            registry=registry,
        )

        # Favorite writes
        self.favorite_mutations = Counter(
            "travelbud_favorite_mutations_total",
            "Favorite add/remove mutations",
            ["operation", "outcome"],
            registry=registry,
        )

        # Collection size after each favorite write
        self.favorites_size = Histogram(
            "travelbud_favorites_collection_size",
            "Number of favorites held by a user after a mutation",
            buckets=[0, 1, 5, 10, 25, 50, 100, 250],
            registry=registry,
        )


@lru_cache()
def get_account_metrics() -> AccountMetrics:
    """Process-wide metrics instance registered on the default registry.

    Returns:
        AccountMetrics
    """
    return AccountMetrics()


def get_metrics_handler() -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(REGISTRY)

    return metrics_handler
