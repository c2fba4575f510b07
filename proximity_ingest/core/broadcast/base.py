from __future__ import annotations

from typing import Protocol

from ..domain.reading import LiveUpdate


class LiveBroadcaster(Protocol):
    """Interfaz del canal live hacia los dashboards.

    El pipeline solo depende de esta interfaz. Las implementaciones entregan
    a quien esté conectado en el momento de la llamada: sin cola, sin ack
    y sin backfill para quien se conecte después.
    """

    async def broadcast(self, update: LiveUpdate) -> int:
        """Empuja la actualización y devuelve a cuántos suscriptores llegó."""

        ...
