# ==============================================================================
# SERVICIO DE ESTADÍSTICAS DE VENTAS
# ==============================================================================
# Calcula el resumen de ventas a partir de las órdenes ENTREGADAS.
#
# REGLA PRINCIPAL: Solo "Entregada" cuenta para estadísticas.
# - Cada orden se atribuye a su delivered_at (o created_at si falta)
# - El filtro de fechas aplica a los totales del período
# - Las cifras de HOY ignoran el filtro: siempre sobre todas las entregadas
# ==============================================================================

from calendar import monthrange
from collections import defaultdict
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from comandas.models.entities import (
    DateFilter,
    Order,
    PaymentMethod,
    SalesData,
    local_datetime,
    round_half_up,
)


def format_duration(minutes: Optional[float]) -> str:
    """
    Formatea minutos como "Xh Ym" o "Ym".

    Returns:
        "N/A" si no hay duración o no es positiva
    """
    if not minutes or minutes <= 0:
        return 'N/A'
    hours = int(minutes // 60)
    mins = round_half_up(minutes % 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


class StatsService:
    """
    Servicio para cálculo de estadísticas de ventas.

    Responsabilidades:
    - Resolver el rango de fechas de un DateFilter
    - Filtrar solo órdenes entregadas dentro del rango
    - Totales por método de pago, cifras de hoy y desglose diario

    Es una función pura sobre las órdenes recibidas: no guarda nada
    entre llamadas.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            clock: Función que retorna la hora actual (con zona horaria).
                   Define "hoy" y la zona en la que se evalúan los filtros.
        """
        self.clock = clock or (lambda: datetime.now().astimezone())

    def _get_date_range(
        self,
        date_filter: Optional[DateFilter],
        now: datetime
    ) -> Optional[Tuple[datetime, datetime]]:
        """
        Calcula el rango de fechas del filtro.

        Args:
            date_filter: Filtro a resolver (None = todas)
            now: Hora actual (define la zona horaria y la semana actual)

        Returns:
            Tupla (inicio, fin) inclusiva, o None si no se filtra
        """
        if date_filter is None or date_filter.type == 'all':
            return None

        tz = now.tzinfo

        if date_filter.type == 'week':
            # Lunes a domingo de la semana de referencia
            reference = date_filter.reference or now.date()
            week_start = reference - timedelta(days=reference.weekday())
            return self._day_bounds(week_start, week_start + timedelta(days=6), tz)

        if date_filter.type == 'month':
            # month es índice 0-11
            year = date_filter.year
            month = date_filter.month + 1
            last_day = monthrange(year, month)[1]
            return self._day_bounds(date(year, month, 1), date(year, month, last_day), tz)

        if date_filter.type == 'range':
            if date_filter.start is None or date_filter.end is None:
                return None
            start, end = date_filter.start, date_filter.end
            if start > end:
                start, end = end, start
            return self._day_bounds(start, end, tz)

        return None

    @staticmethod
    def _day_bounds(first: date, last: date, tz: Optional[tzinfo]) -> Tuple[datetime, datetime]:
        """Desde las 00:00:00 de `first` hasta las 23:59:59.999999 de `last`."""
        return (
            datetime.combine(first, time.min, tzinfo=tz),
            datetime.combine(last, time.max, tzinfo=tz),
        )

    def _filter_delivered_orders(
        self,
        orders: Iterable[Order],
        date_range: Optional[Tuple[datetime, datetime]],
        tz: Optional[tzinfo]
    ) -> List[Order]:
        """
        Filtra órdenes que:
        1. Están Entregadas
        2. Están dentro del rango (si hay rango), por delivered_at o created_at
        """
        filtered = []
        for order in orders:
            if not order.is_delivered:
                continue
            if date_range is None:
                filtered.append(order)
                continue
            order_date = local_datetime(order.attributed_at, tz)
            if order_date is None:
                continue
            start, end = date_range
            if start <= order_date <= end:
                filtered.append(order)
        return filtered

    def calculate(
        self,
        delivered_orders: Iterable[Order],
        date_filter: Optional[DateFilter] = None
    ) -> SalesData:
        """
        Calcula el resumen de ventas.

        Args:
            delivered_orders: Órdenes entregadas del negocio
            date_filter: Filtro de fechas (None = todas)

        Returns:
            SalesData con totales del período y cifras de hoy
        """
        orders = list(delivered_orders)
        now = self.clock()
        tz = now.tzinfo

        date_range = self._get_date_range(date_filter, now)
        period = self._filter_delivered_orders(orders, date_range, tz)

        total_revenue = 0
        cash_total = 0
        transfer_total = 0
        durations = []
        daily_data = defaultdict(lambda: {'orders': 0, 'revenue': 0})

        cash = PaymentMethod.EFECTIVO.value.lower()
        transfer = PaymentMethod.TRANSFERENCIA.value.lower()

        for order in period:
            total_revenue += order.total

            method = (order.payment_method or '').lower()
            if method == cash:
                cash_total += order.total
            elif method == transfer:
                transfer_total += order.total

            if order.duration_minutes and order.duration_minutes > 0:
                durations.append(order.duration_minutes)

            # Desglose diario
            order_date = local_datetime(order.attributed_at, tz)
            if order_date:
                day_key = order_date.date().isoformat()
                daily_data[day_key]['orders'] += 1
                daily_data[day_key]['revenue'] += order.total

        average_delivery_time = 0
        if durations:
            average_delivery_time = round_half_up(sum(durations) / len(durations))

        # Cifras de hoy: sin filtro, sobre todas las entregadas
        today = now.date()
        orders_today = 0
        revenue_today = 0
        for order in self._filter_delivered_orders(orders, None, tz):
            order_date = local_datetime(order.attributed_at, tz)
            if order_date and order_date.date() == today:
                orders_today += 1
                revenue_today += order.total

        daily_breakdown = [
            {'date': day, 'orders': data['orders'], 'revenue': data['revenue']}
            for day, data in sorted(daily_data.items())
        ]

        return SalesData(
            total_orders=len(period),
            total_revenue=total_revenue,
            cash_total=cash_total,
            transfer_total=transfer_total,
            orders_today=orders_today,
            revenue_today=revenue_today,
            average_delivery_time=average_delivery_time,
            daily_breakdown=daily_breakdown,
        )

    def describe_range(self, date_filter: Optional[DateFilter]) -> Optional[Dict[str, str]]:
        """
        Rango efectivo del filtro en formato YYYY-MM-DD (para la respuesta HTTP).

        Returns:
            {'start': ..., 'end': ...} o None si no se filtra
        """
        date_range = self._get_date_range(date_filter, self.clock())
        if date_range is None:
            return None
        start, end = date_range
        return {'start': start.date().isoformat(), 'end': end.date().isoformat()}
