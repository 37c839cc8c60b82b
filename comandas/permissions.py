# ==============================================================================
# PERMISOS POR ROL
# ==============================================================================
# Qué pantallas (capacidades) puede usar cada rol.
# El núcleo (servicios) no conoce roles: el control se hace en las rutas.
#
#   Admin  → todo
#   Cajero → tomar órdenes
#   Cocina → vista de cocina
# ==============================================================================

from typing import FrozenSet, Optional

from comandas.models.entities import AppRole, enum_value


# Capacidades (una por pantalla)
CAP_ORDERS = 'orders'
CAP_KITCHEN = 'kitchen'
CAP_HISTORY = 'history'
CAP_SALES = 'sales'
CAP_PRODUCTS = 'products'

ALL_CAPABILITIES = frozenset([CAP_ORDERS, CAP_KITCHEN, CAP_HISTORY, CAP_SALES, CAP_PRODUCTS])

ROLE_CAPABILITIES = {
    AppRole.ADMIN.value: ALL_CAPABILITIES,
    AppRole.CAJERO.value: frozenset([CAP_ORDERS]),
    AppRole.COCINA.value: frozenset([CAP_KITCHEN]),
}


def normalize_role(role) -> Optional[str]:
    """
    Normaliza el rol a su valor canónico ('Admin', 'Cajero', 'Cocina').
    Acepta cualquier combinación de mayúsculas. Retorna None si no es válido.
    """
    if not role:
        return None
    low = str(enum_value(role)).strip().lower()
    for r in AppRole:
        if r.value.lower() == low:
            return r.value
    return None


def capabilities_for(role) -> FrozenSet[str]:
    """Capacidades del rol (vacío si el rol es desconocido)."""
    canonical = normalize_role(role)
    if canonical is None:
        return frozenset()
    return ROLE_CAPABILITIES[canonical]


def has_capability(role, capability: str) -> bool:
    return capability in capabilities_for(role)
