# ==============================================================================
# SERVICIO DE ÓRDENES
# ==============================================================================
# Centraliza el ciclo de vida de las órdenes de un negocio.
#
# Flujo de estados (lineal, solo hacia adelante):
#   Pendiente → En proceso → Terminada → Entregada
#
# Las operaciones NO modifican el estado local: escriben en el almacén,
# el almacén notifica el cambio y el servicio recarga ambas colecciones.
# ==============================================================================

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from comandas.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    OrderValidationError,
    StoreError,
)
from comandas.models.entities import (
    VALID_STATUSES,
    BusinessContext,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    enum_value,
    local_datetime,
    round_half_up,
)
from comandas.repositories.interfaces import IChangeFeed, IOrderRepository, OrderBy, StatusFilter
from comandas.services.audit_service import AuditService


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Hora actual con la zona horaria local del servidor."""
    return datetime.now().astimezone()


# Estados visibles en la vista de cocina
KITCHEN_STATUSES = (
    OrderStatus.PENDIENTE.value,
    OrderStatus.EN_PROCESO.value,
    OrderStatus.TERMINADA.value,
)


def next_status(status: str) -> Optional[str]:
    """
    Estado al que se puede avanzar con advance_status.

    Returns:
        'En proceso' para Pendiente, 'Terminada' para En proceso,
        None para Terminada (solo puede completarse) y Entregada
    """
    status = enum_value(status)
    if status == OrderStatus.PENDIENTE.value:
        return OrderStatus.EN_PROCESO.value
    if status == OrderStatus.EN_PROCESO.value:
        return OrderStatus.TERMINADA.value
    return None


def normalize_payment_method(method: Any) -> str:
    """
    Valida y normaliza el método de pago (sin distinguir mayúsculas).

    Raises:
        OrderValidationError: Si no es Efectivo ni Transferencia
    """
    value = str(enum_value(method) or '').strip().lower()
    for pm in PaymentMethod:
        if pm.value.lower() == value:
            return pm.value
    raise OrderValidationError(f"Método de pago inválido: {method}")


def elapsed_minutes(created_at: Optional[str], delivered_at: datetime) -> Optional[int]:
    """Minutos entre creación y entrega (redondeo comercial, nunca negativo)."""
    created = local_datetime(created_at, delivered_at.tzinfo)
    if created is None:
        return None
    minutes = (delivered_at - created).total_seconds() / 60
    return max(0, round_half_up(minutes))


class OrderService:
    """
    Administrador del ciclo de vida de las órdenes de UN negocio.

    Mantiene dos colecciones disjuntas:
    - active_orders: status != Entregada, por created_at ascendente
    - delivered_orders: status == Entregada, por delivered_at descendente

    Uso:
        service = OrderService(ctx, order_repo, change_feed)
        service.start()      # primera carga + suscripción
        service.create('Ana', [{'id': 'b1', 'name': 'Burger', 'quantity': 2, 'price': 100}])
        ...
        service.close()
    """

    def __init__(
        self,
        ctx: BusinessContext,
        order_repo: IOrderRepository,
        change_feed: Optional[IChangeFeed] = None,
        audit_service: Optional[AuditService] = None,
        clock: Optional[Clock] = None,
        enforce_transitions: bool = True
    ):
        """
        Args:
            ctx: Negocio (y usuario) al que se limita el servicio
            order_repo: Almacén de órdenes
            change_feed: Canal de cambios; sin canal hay que llamar reload()
            audit_service: Servicio de auditoría (opcional)
            clock: Función que retorna la hora actual (con zona horaria)
            enforce_transitions: Rechazar cambios de estado fuera del flujo
        """
        self.ctx = ctx
        self.order_repo = order_repo
        self.change_feed = change_feed
        self.audit_service = audit_service
        self.clock = clock or system_clock
        self.enforce_transitions = enforce_transitions

        self._active: List[Order] = []
        self._delivered: List[Order] = []
        self._lock = threading.RLock()
        self._subscription: Optional[int] = None
        self.is_loading = False

    # =========================================================================
    # SUSCRIPCIÓN
    # =========================================================================

    def start(self) -> bool:
        """
        Se suscribe al canal de cambios y hace la primera carga.

        Returns:
            Resultado de la primera carga
        """
        if self.change_feed is not None and self._subscription is None:
            self._subscription = self.change_feed.subscribe(self._on_change, table='orders')
        return self.reload()

    def close(self) -> None:
        """Cancela la suscripción al canal de cambios."""
        if self.change_feed is not None and self._subscription is not None:
            self.change_feed.unsubscribe(self._subscription)
        self._subscription = None

    def _on_change(self, event: Any) -> None:
        # El contenido del evento no importa: cualquier cambio recarga todo
        self.reload()

    # =========================================================================
    # COLECCIONES
    # =========================================================================

    @property
    def active_orders(self) -> List[Order]:
        with self._lock:
            return list(self._active)

    @property
    def delivered_orders(self) -> List[Order]:
        with self._lock:
            return list(self._delivered)

    def reload(self) -> bool:
        """
        Recarga ambas colecciones desde el almacén y las reemplaza completas.

        Si alguna consulta falla se registra el error y se conservan
        las colecciones anteriores.

        Returns:
            True si la carga fue exitosa
        """
        tz = self.clock().tzinfo
        self.is_loading = True
        try:
            active = self.order_repo.query(
                self.ctx.business_id,
                StatusFilter(OrderStatus.ENTREGADA.value, exclude=True),
                OrderBy('created_at', tz=tz),
            )
            delivered = self.order_repo.query(
                self.ctx.business_id,
                StatusFilter(OrderStatus.ENTREGADA.value),
                OrderBy('delivered_at', descending=True, tz=tz),
            )
        except StoreError as e:
            logger.error("[ÓRDENES] Error cargando órdenes del negocio %s: %s", self.ctx.business_id, e)
            return False
        finally:
            self.is_loading = False

        with self._lock:
            self._active = active
            self._delivered = delivered
        return True

    def get_order(self, order_id: Any) -> Optional[Order]:
        """Busca una orden en las colecciones locales."""
        with self._lock:
            for order in self._active + self._delivered:
                if order.id == order_id:
                    return order
        return None

    def orders_by_status(self) -> Dict[str, List[Order]]:
        """
        Órdenes activas agrupadas por estado (vista de cocina).

        Returns:
            {'Pendiente': [...], 'En proceso': [...], 'Terminada': [...]}
        """
        grouped: Dict[str, List[Order]] = OrderedDict((s, []) for s in KITCHEN_STATUSES)
        for order in self.active_orders:
            grouped.setdefault(order.status, []).append(order)
        return grouped

    def history_by_day(self) -> List[Dict[str, Any]]:
        """
        Órdenes entregadas agrupadas por día (entrega o, si falta, creación).

        Returns:
            [{'date': 'YYYY-MM-DD', 'orders': [Order, ...], 'total': int}, ...]
            del día más reciente al más antiguo
        """
        tz = self.clock().tzinfo
        groups: Dict[str, List[Order]] = {}
        for order in self.delivered_orders:
            dt = local_datetime(order.attributed_at, tz)
            key = dt.date().isoformat() if dt else ''
            groups.setdefault(key, []).append(order)

        return [
            {
                'date': day,
                'orders': orders,
                'total': sum(o.total for o in orders),
            }
            for day, orders in sorted(groups.items(), reverse=True)
        ]

    # =========================================================================
    # OPERACIONES
    # =========================================================================

    def create(self, customer_name: str, items: List[Any], user_id: Optional[str] = None) -> Order:
        """
        Crea una orden nueva en estado Pendiente.

        Args:
            customer_name: Nombre del cliente
            items: Lista de OrderItem o dicts {id, name, quantity, price}
            user_id: Usuario que crea la orden (auditoría; default: ctx.user_id)

        Returns:
            La orden guardada (con id y order_code del almacén)

        Raises:
            OrderValidationError: Nombre vacío o no textual, sin ítems o ítems inválidos
            StoreError: El almacén rechazó la inserción
        """
        if customer_name is not None and not isinstance(customer_name, str):
            raise OrderValidationError("El nombre del cliente debe ser texto")
        customer_name = (customer_name or '').strip()
        if not customer_name:
            raise OrderValidationError("El nombre del cliente es requerido")
        if items is not None and not isinstance(items, (list, tuple)):
            raise OrderValidationError("Los ítems deben ser una lista")
        if not items:
            raise OrderValidationError("La orden debe tener al menos un ítem")

        order_items = [self._build_item(item) for item in items]
        order = Order(
            id=None,
            business_id=self.ctx.business_id,
            order_code='',
            customer_name=customer_name,
            items=order_items,
            status=OrderStatus.PENDIENTE.value,
            payment_method=None,
            created_at=self.clock().isoformat(),
        )
        order.total = order.calculate_total()

        data = order.to_dict()
        data.pop('id')
        data.pop('order_code')
        try:
            saved = self.order_repo.insert(data)
        except StoreError:
            logger.exception("[ÓRDENES] No se pudo crear la orden de %s", customer_name)
            raise

        logger.info("[ÓRDENES] %s creada (%s, total %s)", saved.order_code, customer_name, saved.total)
        if self.audit_service:
            self.audit_service.log_order_created(
                self._actor(user_id), saved.order_code, customer_name, saved.total, len(order_items)
            )
        return saved

    def advance_status(self, order_id: Any, new_status: Any, user_id: Optional[str] = None) -> None:
        """
        Cambia el estado de una orden.

        Con enforce_transitions solo se acepta el estado siguiente del actual.
        Entregada nunca se acepta aquí (para eso está complete_order).

        Raises:
            OrderNotFoundError: La orden no existe en este negocio
            InvalidTransitionError: Estado desconocido o fuera del flujo
            StoreError: El almacén rechazó la actualización
        """
        new_status = enum_value(new_status)
        order = self._load_order(order_id)

        # Entregada exige método de pago: solo por complete_order
        if new_status not in VALID_STATUSES or new_status == OrderStatus.ENTREGADA.value:
            raise InvalidTransitionError(order_id, order.status, new_status)
        if self.enforce_transitions and next_status(order.status) != new_status:
            raise InvalidTransitionError(order_id, order.status, new_status)

        self._update(order_id, {'status': new_status})
        logger.info("[ÓRDENES] %s: %s -> %s", order.order_code, order.status, new_status)
        if self.audit_service:
            self.audit_service.log_status_change(self._actor(user_id), order.order_code, order.status, new_status)

    def complete_order(self, order_id: Any, payment_method: Any, user_id: Optional[str] = None) -> None:
        """
        Entrega una orden: status Entregada, método de pago y delivered_at
        se escriben juntos en una sola actualización.

        Raises:
            OrderValidationError: Método de pago inválido
            OrderNotFoundError: La orden no existe en este negocio
            InvalidTransitionError: La orden no está Terminada (con enforce_transitions)
            StoreError: El almacén rechazó la actualización
        """
        method = normalize_payment_method(payment_method)
        order = self._load_order(order_id)

        if self.enforce_transitions and order.status != OrderStatus.TERMINADA.value:
            raise InvalidTransitionError(order_id, order.status, OrderStatus.ENTREGADA.value)

        delivered_at = self.clock()
        fields = {
            'status': OrderStatus.ENTREGADA.value,
            'payment_method': method,
            'delivered_at': delivered_at.isoformat(),
        }
        duration = elapsed_minutes(order.created_at, delivered_at)
        if duration is not None:
            fields['duration_minutes'] = duration

        self._update(order_id, fields)
        logger.info("[ÓRDENES] %s entregada (%s, %s min)", order.order_code, method, duration)
        if self.audit_service:
            self.audit_service.log_order_delivered(
                self._actor(user_id), order.order_code, order.total, method, duration
            )

    # =========================================================================
    # AUXILIARES
    # =========================================================================

    @staticmethod
    def _build_item(item: Any) -> OrderItem:
        """
        Convierte un ítem de entrada en OrderItem validado.

        Raises:
            OrderValidationError: Cantidad < 1 o precio no entero/negativo
        """
        if isinstance(item, OrderItem):
            data = item.to_dict()
        elif isinstance(item, dict):
            data = item
        else:
            raise OrderValidationError(f"Ítem inválido: {item!r}")

        quantity = data.get('quantity')
        price = data.get('price')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise OrderValidationError(f"Cantidad inválida para '{data.get('name', '')}': {quantity}")
        if isinstance(price, bool) or not isinstance(price, int) or price < 0:
            raise OrderValidationError(f"Precio inválido para '{data.get('name', '')}': {price}")

        return OrderItem(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            quantity=quantity,
            price=price,
        )

    def _actor(self, user_id: Optional[str]) -> BusinessContext:
        """Contexto para auditoría con el usuario que hizo la acción."""
        if not user_id or user_id == self.ctx.user_id:
            return self.ctx
        return BusinessContext(self.ctx.business_id, user_id, self.ctx.role)

    def _load_order(self, order_id: Any) -> Order:
        order = self.order_repo.get(order_id)
        if order is None or order.business_id != self.ctx.business_id:
            raise OrderNotFoundError(order_id)
        return order

    def _update(self, order_id: Any, fields: Dict[str, Any]) -> None:
        try:
            updated = self.order_repo.update(order_id, fields)
        except StoreError:
            logger.exception("[ÓRDENES] No se pudo actualizar la orden %s", order_id)
            raise
        if not updated:
            raise OrderNotFoundError(order_id)
