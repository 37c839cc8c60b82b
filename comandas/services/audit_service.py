# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza toda la lógica de registro de auditoría.
# Formatea mensajes humanizados y categoriza eventos.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from comandas.exceptions import StoreError
from comandas.models.entities import BusinessContext
from comandas.repositories.interfaces import IAuditRepository


logger = logging.getLogger(__name__)


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Centraliza:
    - Registro de eventos con mensajes humanizados
    - Categorización de eventos (ORDEN, PAGO, MENU)
    - Consulta de logs por negocio

    La regla de oro: si entra dinero (orden entregada) -> siempre log de PAGO
    """

    # Tipos de eventos de auditoría
    TYPE_ORDEN = 'ORDEN'
    TYPE_PAGO = 'PAGO'
    TYPE_MENU = 'MENU'

    def __init__(self, audit_repo: IAuditRepository):
        """
        Args:
            audit_repo: Repositorio de auditoría
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        ctx: BusinessContext,
        log_type: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            ctx: Negocio y usuario que realizó la acción
            log_type: Tipo de evento (ORDEN, PAGO, MENU)
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (código de orden, id de producto)
            details: Detalles adicionales

        Se llama después de que la operación ya quedó guardada: un fallo
        del archivo de auditoría se registra en el log y no se propaga.
        """
        try:
            self.audit_repo.log(
                log_type, ctx.user_id, message, related_id, details,
                business_id=ctx.business_id,
            )
        except StoreError:
            logger.exception("[AUDITORÍA] No se pudo registrar %s %s: %s", log_type, related_id, message)

    def log_order_created(
        self,
        ctx: BusinessContext,
        order_code: str,
        customer_name: str,
        total: int,
        items_count: int
    ) -> None:
        """Registra la creación de una orden."""
        user = ctx.user_id or 'sistema'
        message = (
            f"Orden {order_code} creada por {user} para {customer_name} "
            f"- Total: ${total} - {items_count} ítems"
        )
        self.log(
            ctx, self.TYPE_ORDEN, message, order_code,
            {'total': total, 'customer_name': customer_name, 'items_count': items_count}
        )

    def log_status_change(
        self,
        ctx: BusinessContext,
        order_code: str,
        old_status: str,
        new_status: str
    ) -> None:
        """Registra un cambio de estado de orden."""
        user = ctx.user_id or 'sistema'
        message = f"Orden {order_code}: {old_status} → {new_status} por {user}"
        self.log(
            ctx, self.TYPE_ORDEN, message, order_code,
            {'from': old_status, 'to': new_status}
        )

    def log_order_delivered(
        self,
        ctx: BusinessContext,
        order_code: str,
        total: int,
        payment_method: str,
        duration_minutes: Optional[int] = None
    ) -> None:
        """
        Registra la entrega de una orden y el cobro correspondiente.
        REGLA DE ORO: la entrega siempre genera un log de PAGO.
        """
        user = ctx.user_id or 'sistema'
        self.log(
            ctx, self.TYPE_ORDEN,
            f"Orden {order_code} entregada por {user}",
            order_code,
            {'duration_minutes': duration_minutes}
        )
        self.log(
            ctx, self.TYPE_PAGO,
            f"Pago recibido: ${total} ({payment_method}) - Orden {order_code}",
            order_code,
            {'amount': total, 'method': payment_method}
        )

    def log_menu_item_created(self, ctx: BusinessContext, item_id: str, name: str, price: int, category: str) -> None:
        self.log(
            ctx, self.TYPE_MENU,
            f"Producto '{name}' creado en {category} - Precio: ${price}",
            item_id,
            {'name': name, 'price': price, 'category': category}
        )

    def log_menu_item_updated(self, ctx: BusinessContext, item_id: str, name: str, changes: Dict[str, Any]) -> None:
        fields = ', '.join(sorted(changes)) or 'sin cambios'
        self.log(
            ctx, self.TYPE_MENU,
            f"Producto '{name}' editado ({fields})",
            item_id,
            {'changes': changes}
        )

    def log_menu_item_deleted(self, ctx: BusinessContext, item_id: str, name: str) -> None:
        self.log(ctx, self.TYPE_MENU, f"Producto '{name}' eliminado", item_id)

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def get_logs(self, ctx: BusinessContext, log_type: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Logs recientes del negocio.

        Args:
            ctx: Negocio actual
            log_type: Filtrar por tipo (None = todos)
            limit: Máximo de registros
        """
        logs = [
            log for log in self.audit_repo.load()
            if log.get('business_id') == ctx.business_id
            and (log_type is None or log.get('type') == log_type)
        ]
        return logs[:limit]
