# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Son independientes del mecanismo de persistencia (JSON local o el
# almacén remoto del negocio).
# ==============================================================================

from .entities import (
    # Contexto
    BusinessContext,
    AppRole,

    # Órdenes
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    STATUS_FLOW,
    VALID_STATUSES,
    VALID_PAYMENT_METHODS,

    # Menú
    MenuItem,

    # Reportes
    DateFilter,
    SalesData,

    # Utilidades
    enum_value,
    parse_timestamp,
    local_datetime,
    round_half_up,
)

__all__ = [
    # Contexto
    'BusinessContext',
    'AppRole',

    # Órdenes
    'Order',
    'OrderItem',
    'OrderStatus',
    'PaymentMethod',
    'STATUS_FLOW',
    'VALID_STATUSES',
    'VALID_PAYMENT_METHODS',

    # Menú
    'MenuItem',

    # Reportes
    'DateFilter',
    'SalesData',

    # Utilidades
    'enum_value',
    'parse_timestamp',
    'local_datetime',
    'round_half_up',
]
