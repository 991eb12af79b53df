"""Registry of offerable services, symptoms and admin requests for one company."""

import logging
from typing import Iterable, Optional

from receptionist.errors import CatalogConfigError
from receptionist.schemas.catalog_schema import (
    AdminAction,
    ServiceCatalogEntry,
    ServiceType,
)

logger = logging.getLogger(__name__)

MAX_SUGGESTED_ALTERNATIVES = 2

DEFAULT_ADMIN_REPLIES: dict[AdminAction, str] = {
    AdminAction.TRANSFER: "Let me connect you with our {target} team.",
    AdminAction.MESSAGE: "Let me get that information to you.",
    AdminAction.LINK: "I can send you a link for that.",
}


class ServiceCatalog:
    """
    Ordered, read-only view over a company's catalog entries.

    Catalog order matters: it breaks confidence ties in intent detection.
    """

    def __init__(self, entries: Iterable[ServiceCatalogEntry]) -> None:
        self._entries: list[ServiceCatalogEntry] = list(entries)
        self._by_key: dict[str, ServiceCatalogEntry] = {}
        for entry in self._entries:
            if entry.service_key in self._by_key:
                raise CatalogConfigError(
                    f"Duplicate service_key in catalog: {entry.service_key!r}"
                )
            self._by_key[entry.service_key] = entry

        for entry in self._entries:
            if entry.service_type == ServiceType.SYMPTOM and not entry.routes_to:
                logger.warning(
                    "Symptom '%s' has no routes_to; it can only supply triage prompts",
                    entry.service_key,
                )
            unknown = [k for k in entry.routes_to if k not in self._by_key]
            if unknown:
                logger.warning(
                    "Service '%s' routes to unknown keys: %s", entry.service_key, unknown
                )

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[ServiceCatalogEntry]:
        return list(self._entries)

    def get(self, service_key: str) -> Optional[ServiceCatalogEntry]:
        return self._by_key.get(service_key.strip().lower())

    def enabled_entries(self) -> list[ServiceCatalogEntry]:
        return [e for e in self._entries if e.enabled]

    def resolve_symptom_route(self, entry: ServiceCatalogEntry) -> Optional[ServiceCatalogEntry]:
        """Return the first enabled work service a symptom routes to."""
        for key in entry.routes_to:
            target = self.get(key)
            if target and target.enabled and target.service_type == ServiceType.WORK:
                return target
        return None

    def decline_message_for(self, entry: ServiceCatalogEntry) -> str:
        """Configured decline text, or a default built from the display name."""
        if entry.decline_message and entry.decline_message.strip():
            return entry.decline_message.strip()

        message = f"I'm sorry, we don't offer {entry.display_name.lower()}."
        alternatives = [
            alt.display_name.lower()
            for alt in (self.get(k) for k in entry.alternative_services)
            if alt is not None and alt.enabled
        ][:MAX_SUGGESTED_ALTERNATIVES]
        if alternatives:
            message += f" We can help with {' or '.join(alternatives)} though."
        return message

    def admin_reply_for(self, entry: ServiceCatalogEntry) -> str:
        """Fixed reply for an admin request; admin entries are never generated."""
        handler = entry.admin_handler
        if handler is None:
            return DEFAULT_ADMIN_REPLIES[AdminAction.TRANSFER].format(target="office")
        if handler.message and handler.message.strip():
            return handler.message.strip()
        target = handler.transfer_to or "office"
        return DEFAULT_ADMIN_REPLIES[handler.action].format(target=target)
