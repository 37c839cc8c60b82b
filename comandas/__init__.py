# ==============================================================================
# COMANDAS - Órdenes, cocina y ventas de un restaurante
# ==============================================================================
#
# ESTRUCTURA:
# ├── models/          → Entidades (Order, MenuItem, SalesData, DateFilter)
# ├── repositories/    → Acceso a datos (JSON) y canal de cambios
# ├── services/        → Lógica de negocio (órdenes, ventas, menú, comanda)
# ├── permissions.py   → Capacidades por rol
# ├── config.py        → Configuración desde variables de entorno
# ├── app_container.py → Contenedor de dependencias
# └── main.py          → Rutas Flask (create_app)
# ==============================================================================

__version__ = '1.0.0'
