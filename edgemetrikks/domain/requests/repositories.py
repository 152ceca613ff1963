"""Repository for enriched request rows."""
from __future__ import annotations

from advanced_alchemy.repository import SQLAlchemySyncRepository

from edgemetrikks.domain.requests.models import EdgeRequest


class EdgeRequestRepository(SQLAlchemySyncRepository[EdgeRequest]):
    """Repository for EdgeRequest model."""

    model_type = EdgeRequest

    def count_by_client_ip(self, client_ip: str) -> int:
        """Count stored requests from one client address."""
        return self.count(client_ip=client_ip)
