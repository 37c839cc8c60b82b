# ==============================================================================
# REPOSITORIO DE MENÚ
# ==============================================================================
# Encapsula todo el acceso a menu_items.json
# El catálogo se almacena como lista: [{producto1}, {producto2}, ...]
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from comandas.models.entities import MenuItem
from comandas.repositories.base import ListRepository
from comandas.repositories.change_feed import ChangeFeed


class MenuRepository(ListRepository):
    """
    Repositorio para el catálogo de productos.

    Formato de datos en menu_items.json:
    [
        {
            "id": "burgers_1700000000000",
            "business_id": "negocio-1",
            "name": "Burger Clásica",
            "price": 325,
            "category": "Burgers"
        }
    ]
    """

    table = 'menu_items'

    def __init__(self, base_path: str, change_feed: Optional[ChangeFeed] = None):
        file_path = os.path.join(base_path, 'menu_items.json')
        super().__init__(file_path, change_feed)

    def list_by_business(self, business_id: str) -> List[MenuItem]:
        """
        Productos de un negocio ordenados por categoría y nombre.

        Args:
            business_id: Negocio a consultar

        Returns:
            Lista de MenuItem
        """
        records = self.find_all_by('business_id', business_id)
        records.sort(key=lambda r: (r.get('category') or '', r.get('name') or ''))
        return [MenuItem.from_dict(r) for r in records]

    def get(self, item_id: str) -> Optional[MenuItem]:
        record = self.find_by('id', item_id)
        return MenuItem.from_dict(record) if record else None

    def exists(self, item_id: str) -> bool:
        return self.find_by('id', item_id) is not None

    def create(self, item: MenuItem) -> MenuItem:
        """Agrega un producto al catálogo."""
        self.append(item.to_dict())
        return item

    def update(self, item_id: str, fields: Dict[str, Any]) -> bool:
        """
        Actualiza un producto.

        Returns:
            True si el producto existía
        """
        updates = {k: v for k, v in fields.items() if k not in ('id', 'business_id')}
        return self.update_where('id', item_id, updates)

    def delete(self, item_id: str) -> Optional[MenuItem]:
        """
        Elimina un producto.

        Returns:
            El producto eliminado o None
        """
        removed = self.delete_where('id', item_id)
        return MenuItem.from_dict(removed[0]) if removed else None

    def categories(self, business_id: str) -> List[str]:
        """Categorías únicas del negocio, ordenadas."""
        return sorted({
            r.get('category') for r in self.find_all_by('business_id', business_id)
            if r.get('category')
        })
