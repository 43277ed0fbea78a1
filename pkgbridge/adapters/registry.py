"""
Adapter registry — central dispatch for catalog commands.

The registry handles registration, lookup, mock mode and action
execution. Services never talk to adapters directly: a catalog search
goes through ``invoke_search``, which has the ``Invoker`` signature
expected by ``search_catalogs``.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pkgbridge.adapters.base import Adapter, ExecutionContext
from pkgbridge.core.models.action import Action, Receipt
from pkgbridge.core.models.package import SOURCE_ORDER, PackageSource

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters.

    Features:
        - Register/unregister adapters by name
        - Mock mode: route every action to the mock adapter of the
          same name instead of the real one
        - Execute actions through the appropriate adapter
        - Query adapter availability
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mocks: dict[str, Adapter] = {}
        self._mock_mode = mock_mode

    @classmethod
    def default(cls, mock_mode: bool = False) -> AdapterRegistry:
        """Registry with a live and a mock adapter for every source."""
        from pkgbridge.adapters.mock import MockCatalogAdapter
        from pkgbridge.adapters.shell.command import CatalogSearchAdapter

        registry = cls(mock_mode=mock_mode)
        for source in SOURCE_ORDER:
            registry.register(CatalogSearchAdapter(source))
            registry.register_mock(MockCatalogAdapter(source))
        return registry

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool) -> None:
        self._mock_mode = enabled

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def register_mock(self, adapter: Adapter) -> None:
        """Register the adapter used for ``adapter.name`` in mock mode."""
        self._mocks[adapter.name] = adapter

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)
        self._mocks.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        """Look up the adapter that would handle ``name`` right now."""
        if self._mock_mode:
            return self._mocks.get(name)
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters.keys())

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter."""
        status = {}
        for name in self._adapters:
            adapter = self.get(name)
            try:
                available = adapter.is_available() if adapter else False
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__ if adapter else None,
                "mock": self._mock_mode,
            }
        return status

    def execute_action(self, action: Action, dry_run: bool = False) -> Receipt:
        """Execute an action through the appropriate adapter.

        Resolves the adapter (or its mock), validates, executes and
        returns a Receipt. Never raises.
        """
        start_time = time.monotonic()
        context = ExecutionContext(action=action, dry_run=dry_run, params=action.params)

        adapter = self.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )
        if not is_valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {error_msg}",
            )

        if dry_run:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would execute {action.adapter}:{action.id}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt

    def invoke_search(self, source: PackageSource, query: str, timeout: int) -> Receipt:
        """Run one catalog search. Matches the catalog ``Invoker`` type."""
        action = Action(
            id=f"search:{source.value}",
            adapter=source.value,
            params={"query": query, "timeout": timeout},
        )
        return self.execute_action(action)
