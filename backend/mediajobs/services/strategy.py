"""Waiting strategy selection, decided once per job at submission."""

from __future__ import annotations

from mediajobs.exceptions import UnsupportedStrategy
from mediajobs.models.job import WaitingStrategy
from mediajobs.services.model_registry import Capabilities


def select_strategy(
    capabilities: Capabilities,
    preference: WaitingStrategy | str | None = None,
) -> WaitingStrategy:
    """Pick webhook or polling for a model.

    A supported caller preference wins, then the model's default, then
    whichever strategy the model does support.
    """
    if preference is not None:
        preference = WaitingStrategy(preference)
        if capabilities.supports(preference):
            return preference

    if capabilities.supports(capabilities.default_strategy):
        return capabilities.default_strategy

    for strategy in (WaitingStrategy.WEBHOOK, WaitingStrategy.POLLING):
        if capabilities.supports(strategy):
            return strategy

    raise UnsupportedStrategy("Model supports neither webhooks nor polling")
