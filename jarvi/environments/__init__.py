"""
Environments Module - external calendar/task providers.

Executors talk to providers only through the ProviderAdapter interface in
base.py. The Google implementation lives in google/.
"""

from jarvi.environments.base import ProviderAdapter, ProviderResult

__all__ = ["ProviderAdapter", "ProviderResult"]
