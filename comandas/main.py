# ==============================================================================
# APLICACIÓN FLASK - Rutas JSON de órdenes, cocina, historial, ventas y menú
# ==============================================================================
# La autenticación la resuelve la capa superior: cada request llega con
# el negocio, el usuario y el rol en los headers (ver resolve_context_from_headers).
# Las rutas solo verifican que el rol tenga la capacidad de la pantalla.
#
# Respuestas de error: {"ok": False, "error": "..."} con el código HTTP adecuado.
# ==============================================================================

import logging
import os
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import Flask, current_app, g, request
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException, Unauthorized

from comandas.app_container import AppContainer, get_container
from comandas.config import Settings, configure_logging
from comandas.exceptions import (
    ComandasError,
    InvalidTransitionError,
    MenuItemNotFoundError,
    MenuValidationError,
    OrderNotFoundError,
    OrderValidationError,
    StoreError,
)
from comandas.models.entities import BusinessContext, DateFilter, Order
from comandas.permissions import (
    CAP_HISTORY,
    CAP_KITCHEN,
    CAP_ORDERS,
    CAP_PRODUCTS,
    CAP_SALES,
    capabilities_for,
    normalize_role,
)
from comandas.services.order_service import next_status
from comandas.services.stats_service import format_duration


logger = logging.getLogger(__name__)

ContextResolver = Callable[[Any], Optional[BusinessContext]]

# Código HTTP por tipo de error del dominio
ERROR_STATUS = (
    (OrderValidationError, 400),
    (InvalidTransitionError, 400),
    (MenuValidationError, 400),
    (OrderNotFoundError, 404),
    (MenuItemNotFoundError, 404),
    (StoreError, 503),
)


def resolve_context_from_headers(req) -> Optional[BusinessContext]:
    """
    Lee el contexto del request: X-Business-Id, X-User-Id, X-User-Role.

    Returns:
        BusinessContext o None si falta el negocio
    """
    business_id = (req.headers.get('X-Business-Id') or '').strip()
    if not business_id:
        return None
    return BusinessContext(
        business_id=business_id,
        user_id=(req.headers.get('X-User-Id') or '').strip(),
        role=normalize_role(req.headers.get('X-User-Role')),
    )


def _container() -> AppContainer:
    return current_app.extensions['comandas']


def capability_required(*capabilities: str):
    """
    Exige un negocio en el contexto (401) y al menos una de las
    capacidades indicadas para el rol (403).
    El contexto queda en g.ctx.
    """
    def deco(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            resolver: ContextResolver = current_app.config['COMANDAS_CONTEXT_RESOLVER']
            ctx = resolver(request)
            if ctx is None:
                raise Unauthorized("Falta el negocio del usuario")
            allowed = capabilities_for(ctx.role)
            if not any(cap in allowed for cap in capabilities):
                logger.warning(
                    "[SEGURIDAD] Acceso denegado a %s para rol %s (usuario %s)",
                    request.path, ctx.role, ctx.user_id or '-',
                )
                raise Forbidden("Permiso denegado")
            g.ctx = ctx
            return f(*args, **kwargs)
        return wrapper
    return deco


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("Se esperaba un objeto JSON")
    return data


def order_to_json(order: Order) -> Dict[str, Any]:
    """Orden serializada con los datos que usan las pantallas."""
    data = order.to_dict()
    data['next_status'] = next_status(order.status)
    if order.is_delivered:
        data['duration_label'] = format_duration(order.duration_minutes)
    return data


def create_app(
    container: Optional[AppContainer] = None,
    settings: Optional[Settings] = None,
    context_resolver: Optional[ContextResolver] = None
) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        container: Contenedor de dependencias (default: el global)
        settings: Configuración (solo si no se pasa container)
        context_resolver: Función request -> BusinessContext
    """
    container = container or get_container(settings)
    settings = container.settings
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.secret_key = settings.secret_key

    # Configuración de cookies de sesión
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=86400,  # 24 horas
        COMANDAS_CONTEXT_RESOLVER=context_resolver or resolve_context_from_headers,
    )
    app.extensions['comandas'] = container

    _register_error_handlers(app)
    _register_order_routes(app)
    _register_report_routes(app)
    _register_menu_routes(app)
    _register_comanda_routes(app)
    return app


# ==============================================================================
# MANEJO DE ERRORES
# ==============================================================================

def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(ComandasError)
    def handle_domain_error(e: ComandasError):
        for exc_type, status in ERROR_STATUS:
            if isinstance(e, exc_type):
                return {'ok': False, 'error': str(e)}, status
        logger.error("[API] Error no clasificado: %s", e)
        return {'ok': False, 'error': str(e)}, 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {'ok': False, 'error': e.description}, e.code


# ==============================================================================
# ÓRDENES Y COCINA
# ==============================================================================

def _register_order_routes(app: Flask) -> None:

    @app.get('/api/orders')
    @capability_required(CAP_ORDERS)
    def list_orders():
        service = _container().order_service(g.ctx)
        return {
            'ok': True,
            'is_loading': service.is_loading,
            'orders': [order_to_json(o) for o in service.active_orders],
        }

    @app.post('/api/orders')
    @capability_required(CAP_ORDERS)
    def create_order():
        data = _json_body()
        service = _container().order_service(g.ctx)
        order = service.create(data.get('customer_name', ''), data.get('items') or [], user_id=g.ctx.user_id)
        return {'ok': True, 'order': order_to_json(order)}, 201

    @app.post('/api/orders/<int:order_id>/status')
    @capability_required(CAP_ORDERS, CAP_KITCHEN)
    def advance_order_status(order_id: int):
        data = request.get_json(silent=True) or {}
        service = _container().order_service(g.ctx)
        new_status = data.get('status')
        if not new_status:
            # Sin estado explícito: el siguiente del flujo ("Marcar como ...")
            current = service.get_order(order_id)
            if current is None:
                raise OrderNotFoundError(order_id)
            new_status = next_status(current.status)
            if new_status is None:
                raise InvalidTransitionError(order_id, current.status, '-')
        service.advance_status(order_id, new_status, user_id=g.ctx.user_id)
        order = service.get_order(order_id)
        return {'ok': True, 'order': order_to_json(order) if order else None}

    @app.post('/api/orders/<int:order_id>/complete')
    @capability_required(CAP_ORDERS, CAP_KITCHEN)
    def complete_order(order_id: int):
        data = _json_body()
        service = _container().order_service(g.ctx)
        service.complete_order(order_id, data.get('payment_method'), user_id=g.ctx.user_id)
        order = service.get_order(order_id)
        return {'ok': True, 'order': order_to_json(order) if order else None}

    @app.get('/api/kitchen')
    @capability_required(CAP_KITCHEN)
    def kitchen():
        service = _container().order_service(g.ctx)
        columns = service.orders_by_status()
        return {
            'ok': True,
            'columns': {
                status: [order_to_json(o) for o in orders]
                for status, orders in columns.items()
            },
        }


# ==============================================================================
# HISTORIAL Y VENTAS
# ==============================================================================

def _register_report_routes(app: Flask) -> None:

    @app.get('/api/history')
    @capability_required(CAP_HISTORY)
    def history():
        service = _container().order_service(g.ctx)
        days = service.history_by_day()
        return {
            'ok': True,
            'days': [
                {
                    'date': day['date'],
                    'total': day['total'],
                    'orders': [order_to_json(o) for o in day['orders']],
                }
                for day in days
            ],
        }

    @app.get('/api/sales')
    @capability_required(CAP_SALES)
    def sales():
        try:
            date_filter = DateFilter.from_dict(request.args.to_dict())
        except (KeyError, ValueError) as e:
            raise BadRequest(f"Filtro inválido: {e}")

        container = _container()
        service = container.order_service(g.ctx)
        stats = container.stats_service
        data = stats.calculate(service.delivered_orders, date_filter).to_dict()
        data['average_delivery_time_label'] = format_duration(data['average_delivery_time'])
        return {
            'ok': True,
            'filter': date_filter.type,
            'range': stats.describe_range(date_filter),
            'sales': data,
        }


# ==============================================================================
# MENÚ
# ==============================================================================

def _register_menu_routes(app: Flask) -> None:

    @app.get('/api/menu')
    @capability_required(CAP_ORDERS, CAP_PRODUCTS)
    def list_menu():
        menu = _container().menu_service
        return {
            'ok': True,
            'items': [item.to_dict() for item in menu.list_items(g.ctx)],
            'categories': menu.categories(g.ctx),
        }

    @app.post('/api/menu')
    @capability_required(CAP_PRODUCTS)
    def create_menu_item():
        data = _json_body()
        item = _container().menu_service.create_item(
            g.ctx, data.get('name'), data.get('price'), data.get('category')
        )
        return {'ok': True, 'item': item.to_dict()}, 201

    @app.put('/api/menu/<item_id>')
    @capability_required(CAP_PRODUCTS)
    def update_menu_item(item_id: str):
        data = _json_body()
        item = _container().menu_service.update_item(
            g.ctx, item_id,
            name=data.get('name'),
            price=data.get('price'),
            category=data.get('category'),
        )
        return {'ok': True, 'item': item.to_dict()}

    @app.delete('/api/menu/<item_id>')
    @capability_required(CAP_PRODUCTS)
    def delete_menu_item(item_id: str):
        item = _container().menu_service.delete_item(g.ctx, item_id)
        return {'ok': True, 'item': item.to_dict()}


# ==============================================================================
# COMANDA (ORDEN EN PREPARACIÓN)
# ==============================================================================

def _register_comanda_routes(app: Flask) -> None:

    @app.get('/api/comanda')
    @capability_required(CAP_ORDERS)
    def get_comanda():
        return {'ok': True, 'comanda': _container().cart_service.get_cart(g.ctx)}

    @app.post('/api/comanda/agregar')
    @capability_required(CAP_ORDERS)
    def comanda_add():
        data = _json_body()
        result = _container().cart_service.add_item(g.ctx, data.get('id'))
        return result, (200 if result['ok'] else 404)

    @app.post('/api/comanda/quitar')
    @capability_required(CAP_ORDERS)
    def comanda_remove():
        data = _json_body()
        result = _container().cart_service.remove_item(g.ctx, data.get('id'))
        return result, (200 if result['ok'] else 400)

    @app.post('/api/comanda/cliente')
    @capability_required(CAP_ORDERS)
    def comanda_customer():
        data = _json_body()
        cart = _container().cart_service
        cart.set_customer(g.ctx, data.get('customer_name', ''))
        return {'ok': True, 'comanda': cart.get_cart(g.ctx)}

    @app.post('/api/comanda/limpiar')
    @capability_required(CAP_ORDERS)
    def comanda_clear():
        cart = _container().cart_service
        cart.clear(g.ctx)
        return {'ok': True, 'comanda': cart.get_cart(g.ctx)}

    @app.post('/api/comanda/confirmar')
    @capability_required(CAP_ORDERS)
    def comanda_confirm():
        data = request.get_json(silent=True) or {}
        container = _container()
        order = container.cart_service.confirm(
            container.order_service(g.ctx),
            customer_name=data.get('customer_name'),
            user_id=g.ctx.user_id,
        )
        return {'ok': True, 'order': order_to_json(order)}, 201


if __name__ == "__main__":
    # En producción usar WSGI (gunicorn wsgi:app)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))
    create_app().run(host=HOST, port=PORT, debug=DEBUG)
