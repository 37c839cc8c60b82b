# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Los servicios dependen de las interfaces de repositorios, no de JSON.
#
# ESTRUCTURA:
# ├── order_service.py  → Ciclo de vida de las órdenes (un negocio)
# ├── stats_service.py  → Resumen de ventas sobre órdenes entregadas
# ├── menu_service.py   → Catálogo de productos
# ├── cart_service.py   → Comanda en preparación (sesión Flask)
# └── audit_service.py  → Registro de auditoría
# ==============================================================================

from .audit_service import AuditService
from .order_service import OrderService, next_status, system_clock
from .stats_service import StatsService, format_duration
from .menu_service import MenuService
from .cart_service import CartService

__all__ = [
    'AuditService',
    'OrderService',
    'StatsService',
    'MenuService',
    'CartService',
    'next_status',
    'system_clock',
    'format_duration',
]
