# ==============================================================================
# EXCEPCIONES DEL DOMINIO
# ==============================================================================
# Los servicios lanzan estas excepciones; las rutas las traducen a
# respuestas {"ok": False, "error": ...} con el código HTTP adecuado.
# ==============================================================================


class ComandasError(Exception):
    """Base de todos los errores del sistema de comandas."""
    pass


class OrderValidationError(ComandasError):
    """Datos de orden inválidos (nombre vacío, sin ítems, cantidades malas)."""
    pass


class InvalidTransitionError(ComandasError):
    """Cambio de estado no permitido por el flujo de la orden."""

    def __init__(self, order_id, current_status, requested_status):
        self.order_id = order_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Orden {order_id}: no se puede pasar de "
            f"'{current_status}' a '{requested_status}'"
        )


class OrderNotFoundError(ComandasError):
    """La orden no existe en el negocio actual."""

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Orden {order_id} no encontrada")


class StoreError(ComandasError):
    """El almacén rechazó una lectura o escritura (error de red o de disco)."""
    pass


class MenuValidationError(ComandasError):
    """Datos de producto del menú inválidos."""
    pass


class MenuItemNotFoundError(ComandasError):
    """El producto no existe en el menú del negocio actual."""

    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"Producto {item_id} no encontrado")
