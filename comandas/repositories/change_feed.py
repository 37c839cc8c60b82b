# ==============================================================================
# CANAL DE CAMBIOS - Notificación "algo cambió" por tabla
# ==============================================================================
# Equivalente local de la suscripción en tiempo real del almacén remoto.
# Los repositorios publican después de cada escritura; los suscriptores
# (OrderService) solo usan la señal para recargar todo.
#
# - Entrega síncrona, en el hilo que escribió, a todos los suscriptores
# - Sin filtro por negocio: cada suscriptor recibe todos los eventos
# - Un suscriptor que falla se registra en el log y no afecta a los demás
# ==============================================================================

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """
    Evento de cambio en una tabla.

    Attributes:
        table: Tabla afectada ('orders', 'menu_items', ...)
        type: INSERT, UPDATE o DELETE
        record_id: ID del registro afectado
        business_id: Negocio del registro (informativo)
    """
    table: str
    type: str
    record_id: Any = None
    business_id: Optional[str] = None

    INSERT = 'INSERT'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """
    Canal publish/subscribe en memoria.

    Uso:
        feed = ChangeFeed()
        token = feed.subscribe(lambda event: manager.reload(), table='orders')
        ...
        feed.unsubscribe(token)
    """

    def __init__(self):
        self._subscribers: Dict[int, tuple] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def subscribe(self, callback: Subscriber, table: Optional[str] = None) -> int:
        """
        Registra un suscriptor.

        Args:
            callback: Función que recibe el ChangeEvent
            table: Solo eventos de esta tabla (None = todas)

        Returns:
            Token para cancelar la suscripción
        """
        with self._lock:
            token = next(self._ids)
            self._subscribers[token] = (table, callback)
            return token

    def unsubscribe(self, token: int) -> bool:
        """Cancela una suscripción. Retorna False si el token no existía."""
        with self._lock:
            return self._subscribers.pop(token, None) is not None

    def publish(self, event: ChangeEvent) -> int:
        """
        Entrega el evento a todos los suscriptores de su tabla.

        Returns:
            Cantidad de suscriptores notificados sin error
        """
        with self._lock:
            targets = [
                cb for table, cb in self._subscribers.values()
                if table is None or table == event.table
            ]

        delivered = 0
        for callback in targets:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "[TIEMPO REAL] Suscriptor falló procesando %s en %s",
                    event.type, event.table,
                )
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
