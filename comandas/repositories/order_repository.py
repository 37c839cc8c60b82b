# ==============================================================================
# REPOSITORIO DE ÓRDENES
# ==============================================================================
# Encapsula todo el acceso a orders.json
# Las órdenes se almacenan como lista: [{orden1}, {orden2}, ...]
# ==============================================================================

import os
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional

from comandas.models.entities import Order, local_datetime
from comandas.repositories.base import ListRepository
from comandas.repositories.change_feed import ChangeEvent, ChangeFeed
from comandas.repositories.interfaces import OrderBy, StatusFilter


# Valor de orden para timestamps ausentes o ilegibles
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(value: Any, tz: Optional[tzinfo]) -> datetime:
    # Sin zona: hora de `tz` (UTC si no se indica)
    dt = local_datetime(value, tz or timezone.utc)
    return dt if dt is not None else _EPOCH


class OrderRepository(ListRepository):
    """
    Repositorio para gestión de órdenes.

    Formato de datos en orders.json:
    [
        {
            "id": 1,
            "business_id": "negocio-1",
            "order_code": "ORD-001",
            "customer_name": "Ana",
            "items": [{"id": "burgers_1", "name": "Hamburguesa", "quantity": 2, "price": 100}],
            "total": 200,
            "status": "Pendiente",
            "payment_method": null,
            "created_at": "2024-01-01T10:00:00-03:00"
        }
    ]
    """

    table = 'orders'
    CODE_PREFIX = 'ORD-'

    def __init__(self, base_path: str, change_feed: Optional[ChangeFeed] = None):
        """
        Args:
            base_path: Directorio de datos
            change_feed: Canal donde se publican los cambios de la tabla
        """
        file_path = os.path.join(base_path, 'orders.json')
        super().__init__(file_path, change_feed)

    def insert(self, order_data: Dict[str, Any]) -> Order:
        """
        Inserta una nueva orden.
        El almacén asigna `id` (secuencial global) y `order_code`
        (secuencial por negocio).

        Returns:
            La orden tal como quedó guardada
        """
        with self._file_lock:
            orders = self.get_all()
            record = dict(order_data)
            record['id'] = self._next_id(orders)
            record['order_code'] = self._next_code(orders, record.get('business_id'))
            orders.append(record)
            self.save_all(orders)
        self._notify(ChangeEvent.INSERT, record)
        return Order.from_dict(record)

    def update(self, order_id: Any, fields: Dict[str, Any]) -> bool:
        """
        Actualiza campos de una orden.

        Returns:
            True si la orden existía
        """
        updates = {k: v for k, v in fields.items() if k not in ('id', 'business_id', 'order_code')}
        return self.update_where('id', order_id, updates)

    def get(self, order_id: Any) -> Optional[Order]:
        """Busca una orden por id."""
        record = self.find_by('id', order_id)
        return Order.from_dict(record) if record else None

    def query(
        self,
        business_id: str,
        status_filter: Optional[StatusFilter] = None,
        order_by: Optional[OrderBy] = None
    ) -> List[Order]:
        """
        Obtiene las órdenes de un negocio.

        Args:
            business_id: Negocio a consultar
            status_filter: Filtro de estado (None = todas)
            order_by: Campo y dirección (None = created_at ascendente)
        """
        status_filter = status_filter or StatusFilter()
        order_by = order_by or OrderBy()

        records = [
            r for r in self.find_all_by('business_id', business_id)
            if status_filter.matches(r.get('status', ''))
        ]
        records.sort(
            key=lambda r: _sort_key(r.get(order_by.field), order_by.tz),
            reverse=order_by.descending,
        )
        return [Order.from_dict(r) for r in records]

    def delete(self, order_id: Any) -> bool:
        """Elimina una orden (acción administrativa, no la usa el flujo de órdenes)."""
        return bool(self.delete_where('id', order_id))

    @staticmethod
    def _next_id(orders: List[Dict[str, Any]]) -> int:
        max_id = 0
        for order in orders:
            try:
                max_id = max(max_id, int(order.get('id') or 0))
            except (TypeError, ValueError):
                continue
        return max_id + 1

    def _next_code(self, orders: List[Dict[str, Any]], business_id: Optional[str]) -> str:
        """
        Genera el siguiente código visible del negocio.
        Formato: ORD-XXX (al menos 3 dígitos).
        """
        max_num = 0
        for order in orders:
            if order.get('business_id') != business_id:
                continue
            code = order.get('order_code') or ''
            if code.startswith(self.CODE_PREFIX):
                try:
                    max_num = max(max_num, int(code[len(self.CODE_PREFIX):]))
                except ValueError:
                    continue
        return f"{self.CODE_PREFIX}{max_num + 1:03d}"
