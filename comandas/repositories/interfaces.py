# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que los servicios esperan de sus colaboradores de almacenamiento.
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los servicios dependen de interfaces, NO de implementaciones concretas
#    - Cambiar JSON -> almacén remoto solo requiere nueva implementación
#
# 2. TESTING
#    - Fácil crear dobles que implementen estas interfaces
#
# MIGRACIÓN AL ALMACÉN REMOTO:
# 1. Crear RemoteOrderRepository, RemoteMenuRepository, etc.
# 2. Hacer que implementen estas interfaces
# 3. Cambiar instanciación en app_container.py
# 4. Los servicios NO requieren cambios
#
# ==============================================================================

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from comandas.models.entities import MenuItem, Order


# ==============================================================================
# PARÁMETROS DE CONSULTA
# ==============================================================================

@dataclass(frozen=True)
class StatusFilter:
    """
    Filtro por estado de orden.

    StatusFilter('Entregada')               -> status == Entregada
    StatusFilter('Entregada', exclude=True) -> status != Entregada
    """
    status: Optional[str] = None
    exclude: bool = False

    def matches(self, status: str) -> bool:
        if self.status is None:
            return True
        if self.exclude:
            return status != self.status
        return status == self.status


@dataclass(frozen=True)
class OrderBy:
    """
    Orden de los resultados: campo y dirección.
    `tz` es la zona con la que se leen los timestamps sin zona
    (la misma que usa el servicio para filtrar).
    """
    field: str = 'created_at'
    descending: bool = False
    tz: Optional[tzinfo] = None


# ==============================================================================
# INTERFACES POR DOMINIO
# ==============================================================================

@runtime_checkable
class IChangeFeed(Protocol):
    """Canal de notificaciones "algo cambió"."""

    def subscribe(self, callback: Callable[[Any], None], table: Optional[str] = None) -> int:
        ...

    def unsubscribe(self, token: int) -> bool:
        ...

    def publish(self, event: Any) -> int:
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """
    Almacén de órdenes.

    Cada escritura exitosa debe notificar al canal de cambios
    (cualquier insert/update/delete de la tabla de órdenes).
    """

    def insert(self, order_data: Dict[str, Any]) -> Order:
        """Inserta una orden; el almacén asigna id y order_code."""
        ...

    def update(self, order_id: Any, fields: Dict[str, Any]) -> bool:
        """Actualiza campos parciales. False si la orden no existe."""
        ...

    def query(
        self,
        business_id: str,
        status_filter: Optional[StatusFilter] = None,
        order_by: Optional[OrderBy] = None
    ) -> List[Order]:
        """Órdenes del negocio que cumplen el filtro, ordenadas."""
        ...

    def get(self, order_id: Any) -> Optional[Order]:
        ...


@runtime_checkable
class IMenuRepository(Protocol):
    """Almacén del catálogo de productos."""

    def list_by_business(self, business_id: str) -> List[MenuItem]:
        ...

    def get(self, item_id: str) -> Optional[MenuItem]:
        ...

    def create(self, item: MenuItem) -> MenuItem:
        ...

    def update(self, item_id: str, fields: Dict[str, Any]) -> bool:
        ...

    def delete(self, item_id: str) -> Optional[MenuItem]:
        ...


@runtime_checkable
class IAuditRepository(Protocol):
    """Interfaz para el repositorio de auditoría."""

    def load(self) -> List[Dict[str, Any]]:
        ...

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None,
        business_id: str = ''
    ) -> None:
        ...
