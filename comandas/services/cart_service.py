# ==============================================================================
# SERVICIO DE COMANDA (ORDEN EN PREPARACIÓN)
# ==============================================================================
# La orden que el cajero va armando antes de enviarla a cocina.
# Se almacena en la sesión de Flask: session['comanda'].
# ==============================================================================

from typing import Any, Dict, List, Optional

from flask import session

from comandas.exceptions import MenuItemNotFoundError
from comandas.models.entities import BusinessContext, Order
from comandas.services.menu_service import MenuService
from comandas.services.order_service import OrderService


class CartService:
    """
    Servicio para la comanda en preparación.

    Responsabilidades:
    - Sumar/restar de a una unidad por producto del menú
    - Guardar el nombre del cliente
    - Calcular totales
    - Confirmar la comanda como orden (OrderService.create)

    La comanda se almacena en session['comanda'] como
    {'business_id': str, 'customer_name': str, 'items': [...]}.
    """

    SESSION_KEY = 'comanda'

    def __init__(self, menu_service: MenuService):
        """
        Args:
            menu_service: Servicio del menú (fuente de nombre y precio)
        """
        self.menu_service = menu_service

    def _get_cart(self, ctx: BusinessContext) -> Dict[str, Any]:
        """Comanda actual; una comanda de otro negocio se descarta."""
        cart = session.get(self.SESSION_KEY)
        if not cart or cart.get('business_id') != ctx.business_id:
            cart = {'business_id': ctx.business_id, 'customer_name': '', 'items': []}
        return cart

    def _save_cart(self, cart: Dict[str, Any]) -> None:
        session[self.SESSION_KEY] = cart
        session.modified = True

    def get_cart(self, ctx: BusinessContext) -> Dict[str, Any]:
        """
        Obtiene la comanda con totales calculados.

        Returns:
            Dict con customer_name, items, total_items, total, items_count
        """
        cart = self._get_cart(ctx)
        items: List[Dict[str, Any]] = cart['items']
        return {
            'customer_name': cart.get('customer_name', ''),
            'items': items,
            'total_items': sum(item['quantity'] for item in items),
            'total': sum(item['quantity'] * item['price'] for item in items),
            'items_count': len(items),
        }

    def add_item(self, ctx: BusinessContext, menu_item_id: str) -> Dict[str, Any]:
        """
        Suma una unidad de un producto del menú.

        Returns:
            Dict con resultado (ok, error, comanda)
        """
        try:
            menu_item = self.menu_service.get_item(ctx, menu_item_id)
        except MenuItemNotFoundError as e:
            return {'ok': False, 'error': str(e)}

        cart = self._get_cart(ctx)
        for item in cart['items']:
            if item['id'] == menu_item.id:
                item['quantity'] += 1
                break
        else:
            cart['items'].append({
                'id': menu_item.id,
                'name': menu_item.name,
                'quantity': 1,
                'price': menu_item.price,
            })

        self._save_cart(cart)
        return {'ok': True, 'comanda': self.get_cart(ctx)}

    def remove_item(self, ctx: BusinessContext, menu_item_id: str) -> Dict[str, Any]:
        """
        Resta una unidad; con cantidad 1 el ítem sale de la comanda.

        Returns:
            Dict con resultado (ok, error, comanda)
        """
        cart = self._get_cart(ctx)
        for item in cart['items']:
            if item['id'] == menu_item_id:
                if item['quantity'] > 1:
                    item['quantity'] -= 1
                else:
                    cart['items'].remove(item)
                self._save_cart(cart)
                return {'ok': True, 'comanda': self.get_cart(ctx)}
        return {'ok': False, 'error': 'El producto no está en la comanda'}

    def set_customer(self, ctx: BusinessContext, customer_name: str) -> None:
        cart = self._get_cart(ctx)
        cart['customer_name'] = (customer_name or '').strip()
        self._save_cart(cart)

    def clear(self, ctx: BusinessContext) -> None:
        """Vacía la comanda."""
        self._save_cart({'business_id': ctx.business_id, 'customer_name': '', 'items': []})

    def confirm(
        self,
        order_service: OrderService,
        customer_name: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> Order:
        """
        Envía la comanda como orden nueva y la vacía.
        Si la creación falla la comanda se conserva.

        Raises:
            OrderValidationError: Sin nombre de cliente o sin ítems
            StoreError: El almacén rechazó la inserción
        """
        ctx = order_service.ctx
        cart = self._get_cart(ctx)
        name = customer_name if customer_name is not None else cart.get('customer_name', '')
        order = order_service.create(name, cart['items'], user_id=user_id)
        self.clear(ctx)
        return order
