# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (actualmente JSON).
# Al migrar al almacén remoto solo hay que modificar esta capa.
#
# ESTRUCTURA:
# ├── interfaces.py        → Protocolos (contratos del almacén)
# ├── base.py              → Clases base para JSON (BaseRepository, ListRepository)
# ├── change_feed.py       → Canal de notificaciones de cambios
# ├── order_repository.py  → Acceso a orders.json
# ├── menu_repository.py   → Acceso a menu_items.json
# └── audit_repository.py  → Acceso a audit.json
# ==============================================================================

# Interfaces
from .interfaces import (
    IChangeFeed,
    IOrderRepository,
    IMenuRepository,
    IAuditRepository,
    StatusFilter,
    OrderBy,
)

# Canal de cambios
from .change_feed import ChangeEvent, ChangeFeed

# Implementaciones concretas (JSON)
from .base import BaseRepository, ListRepository
from .order_repository import OrderRepository
from .menu_repository import MenuRepository
from .audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'IChangeFeed',
    'IOrderRepository',
    'IMenuRepository',
    'IAuditRepository',
    'StatusFilter',
    'OrderBy',

    # Canal de cambios
    'ChangeEvent',
    'ChangeFeed',

    # Clases base
    'BaseRepository',
    'ListRepository',

    # Implementaciones JSON
    'OrderRepository',
    'MenuRepository',
    'AuditRepository',
]
