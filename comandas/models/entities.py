# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio (órdenes, menú, ventas).
# Diseñadas para ser independientes del mecanismo de persistencia.
# Los timestamps se guardan como strings ISO 8601, igual que en el almacén.
# ==============================================================================

import math
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any, Dict, List, Optional


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class OrderStatus(str, Enum):
    """Estados de una orden. La progresión es estrictamente lineal."""
    PENDIENTE = "Pendiente"
    EN_PROCESO = "En proceso"
    TERMINADA = "Terminada"
    ENTREGADA = "Entregada"   # Terminal


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados al entregar una orden."""
    EFECTIVO = "Efectivo"
    TRANSFERENCIA = "Transferencia"


class AppRole(str, Enum):
    """Roles del personal dentro de un negocio."""
    ADMIN = "Admin"
    CAJERO = "Cajero"
    COCINA = "Cocina"


# Orden de la máquina de estados (índice = posición en el flujo)
STATUS_FLOW = (
    OrderStatus.PENDIENTE,
    OrderStatus.EN_PROCESO,
    OrderStatus.TERMINADA,
    OrderStatus.ENTREGADA,
)

VALID_STATUSES = frozenset(s.value for s in STATUS_FLOW)
VALID_PAYMENT_METHODS = frozenset(m.value for m in PaymentMethod)


def enum_value(value: Any) -> Any:
    """Devuelve el valor plano de un Enum (o el valor tal cual)."""
    return value.value if isinstance(value, Enum) else value


def round_half_up(value: float) -> int:
    """Redondeo comercial (0.5 sube), no el redondeo bancario de round()."""
    return int(math.floor(value + 0.5))


def parse_timestamp(ts: Optional[str]) -> Optional[datetime]:
    """
    Parsea un timestamp ISO.
    Retorna None si está vacío o no se puede parsear.
    """
    if not ts:
        return None
    try:
        return datetime.fromisoformat(str(ts).replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None


def local_datetime(ts: Optional[str], tz: Optional[tzinfo]) -> Optional[datetime]:
    """
    Parsea un timestamp y lo lleva a la zona horaria `tz`.
    Los timestamps sin zona se interpretan como hora local de `tz`.
    """
    dt = parse_timestamp(ts)
    if dt is None or tz is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


# ==============================================================================
# CONTEXTO DEL NEGOCIO
# ==============================================================================

@dataclass(frozen=True)
class BusinessContext:
    """
    Negocio y usuario actuales.
    Se pasa explícitamente a los servicios en lugar de leerse de un global.

    Attributes:
        business_id: Negocio (tenant) al que se limitan todas las consultas
        user_id: Usuario autenticado (para auditoría)
        role: Rol del usuario (Admin, Cajero, Cocina)
    """
    business_id: str
    user_id: str = ''
    role: Optional[str] = None


# ==============================================================================
# ENTIDADES DE MENÚ
# ==============================================================================

@dataclass
class MenuItem:
    """
    Producto del catálogo (menú) de un negocio.

    Attributes:
        id: Identificador del producto (ej: "burgers_1700000000000")
        business_id: Negocio dueño del producto
        name: Nombre visible
        price: Precio en unidades enteras de moneda
        category: Categoría para agrupar el menú
    """
    id: str
    business_id: str
    name: str
    price: int
    category: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'price': self.price,
            'category': self.category,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MenuItem':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            business_id=str(data.get('business_id', '')),
            name=data.get('name', ''),
            price=int(data.get('price', 0) or 0),
            category=data.get('category', ''),
        )


# ==============================================================================
# ENTIDADES DE ORDEN
# ==============================================================================

@dataclass
class OrderItem:
    """
    Línea de una orden.

    Attributes:
        id: ID del producto del menú
        name: Nombre del producto al momento de la orden
        quantity: Cantidad (>= 1)
        price: Precio unitario entero (>= 0)
    """
    id: str
    name: str
    quantity: int
    price: int

    @property
    def subtotal(self) -> int:
        """Subtotal de la línea."""
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'quantity': self.quantity,
            'price': self.price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderItem':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            quantity=int(data.get('quantity', 0) or 0),
            price=int(data.get('price', 0) or 0),
        )


@dataclass
class Order:
    """
    Una compra de un cliente.

    Attributes:
        id: Identificador interno asignado por el almacén
        business_id: Negocio dueño de la orden
        order_code: Código visible (ej: "ORD-001"), asignado por el almacén
        customer_name: Nombre del cliente
        items: Líneas de la orden
        total: Suma de price * quantity, calculada al crear y guardada
        status: Estado actual (Pendiente, En proceso, Terminada, Entregada)
        payment_method: None hasta que la orden se entrega
        created_at: Timestamp de creación
        delivered_at: Timestamp de entrega (solo si status == Entregada)
        duration_minutes: Minutos entre creación y entrega (solo reportes)
    """
    id: int
    business_id: str
    order_code: str
    customer_name: str
    items: List[OrderItem] = field(default_factory=list)
    total: int = 0
    status: str = OrderStatus.PENDIENTE.value
    payment_method: Optional[str] = None
    created_at: str = ''
    delivered_at: Optional[str] = None
    duration_minutes: Optional[int] = None

    @property
    def is_delivered(self) -> bool:
        """Verifica si la orden fue entregada al cliente."""
        return self.status == OrderStatus.ENTREGADA.value

    @property
    def attributed_at(self) -> str:
        """Timestamp usado para filtros por fecha: entrega o, si no hay, creación."""
        return self.delivered_at or self.created_at

    def calculate_total(self) -> int:
        """Recalcula el total a partir de los ítems."""
        return sum(item.subtotal for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        d = {
            'id': self.id,
            'business_id': self.business_id,
            'order_code': self.order_code,
            'customer_name': self.customer_name,
            'items': [item.to_dict() for item in self.items],
            'total': self.total,
            'status': enum_value(self.status),
            'payment_method': enum_value(self.payment_method),
            'created_at': self.created_at,
        }
        if self.delivered_at:
            d['delivered_at'] = self.delivered_at
        if self.duration_minutes is not None:
            d['duration_minutes'] = self.duration_minutes
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """Crea instancia desde diccionario (formato del almacén)."""
        items = [OrderItem.from_dict(i) for i in data.get('items', [])]
        duration = data.get('duration_minutes')
        return cls(
            id=data.get('id'),
            business_id=str(data.get('business_id', '')),
            order_code=data.get('order_code', ''),
            customer_name=data.get('customer_name', ''),
            items=items,
            total=int(data.get('total', 0) or 0),
            status=data.get('status', OrderStatus.PENDIENTE.value),
            payment_method=data.get('payment_method'),
            created_at=data.get('created_at', ''),
            delivered_at=data.get('delivered_at'),
            duration_minutes=int(duration) if duration is not None else None,
        )


# ==============================================================================
# ENTIDADES DE REPORTES
# ==============================================================================

@dataclass(frozen=True)
class DateFilter:
    """
    Filtro de fechas para el reporte de ventas.

    Tipos:
        all   -> sin filtro
        week  -> lunes a domingo de la semana de `reference` (o de hoy)
        month -> mes completo; `month` es índice 0-11 (0 = enero)
        range -> de `start` a `end`, días completos
    """
    type: str = 'all'
    year: Optional[int] = None
    month: Optional[int] = None
    start: Optional[date] = None
    end: Optional[date] = None
    reference: Optional[date] = None

    @classmethod
    def all(cls) -> 'DateFilter':
        return cls('all')

    @classmethod
    def week(cls, reference: Optional[date] = None) -> 'DateFilter':
        return cls('week', reference=reference)

    @classmethod
    def for_month(cls, year: int, month: int) -> 'DateFilter':
        if not date.min.year <= year <= date.max.year:
            raise ValueError(f"Año inválido: {year}")
        if not 0 <= month <= 11:
            raise ValueError(f"Mes inválido: {month} (se espera 0-11)")
        return cls('month', year=year, month=month)

    @classmethod
    def between(cls, start: Optional[date], end: Optional[date]) -> 'DateFilter':
        # Sin ambas fechas no se filtra
        if start is None or end is None:
            return cls.all()
        if isinstance(start, datetime):
            start = start.date()
        if isinstance(end, datetime):
            end = end.date()
        # Normaliza si el usuario eligió al revés
        if start > end:
            start, end = end, start
        return cls('range', start=start, end=end)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DateFilter':
        """
        Crea un filtro desde parámetros planos (query string o JSON).

        Raises:
            ValueError: Si el tipo o las fechas no son válidos
        """
        if not data:
            return cls.all()
        kind = (data.get('type') or data.get('filter') or 'all').lower()
        if kind == 'all':
            return cls.all()
        if kind == 'week':
            ref = data.get('reference')
            return cls.week(date.fromisoformat(ref) if ref else None)
        if kind == 'month':
            return cls.for_month(int(data['year']), int(data['month']))
        if kind == 'range':
            start = data.get('start')
            end = data.get('end')
            return cls.between(
                date.fromisoformat(start) if start else None,
                date.fromisoformat(end) if end else None,
            )
        raise ValueError(f"Tipo de filtro inválido: {kind}")


@dataclass
class SalesData:
    """
    Agregado derivado de las órdenes entregadas. Nunca se persiste.

    Las cifras de "hoy" no dependen del filtro aplicado.
    """
    total_orders: int = 0
    total_revenue: int = 0
    cash_total: int = 0
    transfer_total: int = 0
    orders_today: int = 0
    revenue_today: int = 0
    average_delivery_time: int = 0
    daily_breakdown: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def cash_percentage(self) -> int:
        """Porcentaje del total pagado en efectivo (0 si no hay ingresos)."""
        if self.total_revenue == 0:
            return 0
        return round_half_up(self.cash_total / self.total_revenue * 100)

    @property
    def transfer_percentage(self) -> int:
        """Porcentaje del total pagado por transferencia (0 si no hay ingresos)."""
        if self.total_revenue == 0:
            return 0
        return round_half_up(self.transfer_total / self.total_revenue * 100)

    @property
    def average_ticket(self) -> int:
        """Ticket promedio del período."""
        if self.total_orders == 0:
            return 0
        return round_half_up(self.total_revenue / self.total_orders)

    @property
    def average_ticket_today(self) -> int:
        """Ticket promedio de hoy."""
        if self.orders_today == 0:
            return 0
        return round_half_up(self.revenue_today / self.orders_today)

    @property
    def top_payment_method(self) -> str:
        """Método de pago con más ingresos (empate -> Transferencia)."""
        if self.cash_total > self.transfer_total:
            return PaymentMethod.EFECTIVO.value
        return PaymentMethod.TRANSFERENCIA.value

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario (incluye cifras derivadas)."""
        return {
            'total_orders': self.total_orders,
            'total_revenue': self.total_revenue,
            'cash_total': self.cash_total,
            'transfer_total': self.transfer_total,
            'orders_today': self.orders_today,
            'revenue_today': self.revenue_today,
            'average_delivery_time': self.average_delivery_time,
            'cash_percentage': self.cash_percentage,
            'transfer_percentage': self.transfer_percentage,
            'average_ticket': self.average_ticket,
            'average_ticket_today': self.average_ticket_today,
            'top_payment_method': self.top_payment_method,
            'daily_breakdown': self.daily_breakdown,
        }
