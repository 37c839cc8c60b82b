# ==============================================================================
# SERVICIO DE MENÚ
# ==============================================================================
# Centraliza la lógica de negocio del catálogo de productos.
# Lectura para todos los roles; alta, edición y baja solo para Admin
# (el control de rol se hace en las rutas).
# ==============================================================================

import logging
import re
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from comandas.exceptions import MenuItemNotFoundError, MenuValidationError
from comandas.models.entities import BusinessContext, MenuItem
from comandas.repositories.interfaces import IMenuRepository
from comandas.services.audit_service import AuditService


logger = logging.getLogger(__name__)


def parse_price(value: Any) -> int:
    """
    Convierte un precio de entrada a entero.

    Raises:
        MenuValidationError: Si no es un número entero mayor a 0
    """
    if isinstance(value, bool):
        raise MenuValidationError("El precio debe ser un número válido mayor a 0")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MenuValidationError("El precio debe ser un número válido mayor a 0")
    if number <= 0 or not number.is_integer():
        raise MenuValidationError("El precio debe ser un número válido mayor a 0")
    return int(number)


class MenuService:
    """
    Servicio para gestión del menú.

    Responsabilidades:
    - Listar productos del negocio (por categoría y nombre)
    - CRUD de productos con validación
    - Generación de IDs: "<categoria>_<milisegundos>"
    """

    def __init__(
        self,
        menu_repo: IMenuRepository,
        audit_service: Optional[AuditService] = None,
        id_clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            menu_repo: Repositorio del menú
            audit_service: Servicio de auditoría (opcional)
            id_clock: Fuente de tiempo (segundos) para generar IDs
        """
        self.menu_repo = menu_repo
        self.audit_service = audit_service
        self.id_clock = id_clock or time.time

    # =========================================================================
    # CONSULTA
    # =========================================================================

    def list_items(self, ctx: BusinessContext) -> List[MenuItem]:
        return self.menu_repo.list_by_business(ctx.business_id)

    def get_item(self, ctx: BusinessContext, item_id: str) -> MenuItem:
        """
        Raises:
            MenuItemNotFoundError: Si no existe en el negocio actual
        """
        item = self.menu_repo.get(item_id)
        if item is None or item.business_id != ctx.business_id:
            raise MenuItemNotFoundError(item_id)
        return item

    def categories(self, ctx: BusinessContext) -> List[str]:
        """Categorías únicas ordenadas."""
        return self.menu_repo.categories(ctx.business_id)

    def grouped_by_category(self, ctx: BusinessContext) -> Dict[str, List[MenuItem]]:
        """Productos agrupados por categoría, en orden de categoría."""
        grouped: Dict[str, List[MenuItem]] = OrderedDict()
        for item in self.list_items(ctx):
            grouped.setdefault(item.category, []).append(item)
        return grouped

    # =========================================================================
    # ALTA / EDICIÓN / BAJA
    # =========================================================================

    def create_item(self, ctx: BusinessContext, name: str, price: Any, category: str) -> MenuItem:
        """
        Crea un producto.

        Args:
            ctx: Negocio actual
            name: Nombre visible (requerido)
            price: Precio entero mayor a 0
            category: Categoría (requerida)

        Raises:
            MenuValidationError: Datos inválidos
        """
        name, price, category = self._validate(name, price, category)
        item = MenuItem(
            id=self._generate_id(category),
            business_id=ctx.business_id,
            name=name,
            price=price,
            category=category,
        )
        self.menu_repo.create(item)
        logger.info("[MENÚ] Producto %s creado (%s)", item.id, name)
        if self.audit_service:
            self.audit_service.log_menu_item_created(ctx, item.id, name, price, category)
        return item

    def update_item(
        self,
        ctx: BusinessContext,
        item_id: str,
        name: Optional[str] = None,
        price: Any = None,
        category: Optional[str] = None
    ) -> MenuItem:
        """
        Edita un producto. Los campos en None se mantienen.

        Raises:
            MenuItemNotFoundError: Si no existe en el negocio actual
            MenuValidationError: Datos inválidos
        """
        current = self.get_item(ctx, item_id)
        name, price, category = self._validate(
            current.name if name is None else name,
            current.price if price is None else price,
            current.category if category is None else category,
        )

        changes = {}
        if name != current.name:
            changes['name'] = name
        if price != current.price:
            changes['price'] = price
        if category != current.category:
            changes['category'] = category

        if changes:
            self.menu_repo.update(item_id, changes)
            logger.info("[MENÚ] Producto %s editado: %s", item_id, sorted(changes))
            if self.audit_service:
                self.audit_service.log_menu_item_updated(ctx, item_id, name, changes)

        return MenuItem(id=current.id, business_id=current.business_id,
                        name=name, price=price, category=category)

    def delete_item(self, ctx: BusinessContext, item_id: str) -> MenuItem:
        """
        Elimina un producto.
        Las órdenes existentes no se modifican: guardan nombre y precio propios.

        Raises:
            MenuItemNotFoundError: Si no existe en el negocio actual
        """
        item = self.get_item(ctx, item_id)
        self.menu_repo.delete(item_id)
        logger.info("[MENÚ] Producto %s eliminado", item_id)
        if self.audit_service:
            self.audit_service.log_menu_item_deleted(ctx, item_id, item.name)
        return item

    # =========================================================================
    # AUXILIARES
    # =========================================================================

    @staticmethod
    def _validate(name: Any, price: Any, category: Any):
        name = str(name or '').strip()
        if not name:
            raise MenuValidationError("El nombre del producto es requerido")
        price = parse_price(price)
        category = str(category or '').strip()
        if not category:
            raise MenuValidationError("Debes seleccionar una categoría")
        return name, price, category

    def _generate_id(self, category: str) -> str:
        """
        Genera el ID de un producto nuevo.
        Formato: categoria_en_minusculas_<milisegundos>
        """
        prefix = re.sub(r'\s+', '_', category.lower())
        millis = int(self.id_clock() * 1000)
        item_id = f"{prefix}_{millis}"
        # Dos altas en el mismo milisegundo
        while self.menu_repo.get(item_id) is not None:
            millis += 1
            item_id = f"{prefix}_{millis}"
        return item_id
