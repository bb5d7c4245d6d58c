from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pocketbook.services.schema import ServiceType

if TYPE_CHECKING:
    from pocketbook.services.base import Service


class ServiceFactory(ABC):
    service_class: type[Service]
    # services this one is built from, passed to create() by name
    dependencies: list[ServiceType] = []

    @abstractmethod
    def create(self, *args, **kwargs) -> "Service":
        """Build the service from its resolved dependencies."""
