import pytest
from flask import request

from comandas.main import create_app, resolve_context_from_headers

from conftest import ITEMS, headers


def _create(client, name='Ana', items=ITEMS, **kw):
    return client.post('/api/orders', json={'customer_name': name, 'items': items}, headers=headers(**kw))


def _advance(client, order_id, status=None, role='Cocina'):
    body = {'status': status} if status else {}
    return client.post(f'/api/orders/{order_id}/status', json=body, headers=headers(role=role))


def _ready(client, order_id):
    _advance(client, order_id)
    _advance(client, order_id)


# ---------------------------------------------------------------------------
# Acceso
# ---------------------------------------------------------------------------

def test_missing_business_is_unauthorized(client):
    response = client.get('/api/orders')
    assert response.status_code == 401
    assert response.get_json()['ok'] is False


@pytest.mark.parametrize('role, path', [
    ('Cocina', '/api/orders'),
    ('Cajero', '/api/kitchen'),
    ('Cajero', '/api/history'),
    ('Cocina', '/api/sales'),
    ('Cajero', '/api/sales'),
    ('Invitado', '/api/orders'),
])
def test_role_without_capability_is_forbidden(client, role, path):
    response = client.get(path, headers=headers(role=role))
    assert response.status_code == 403
    assert response.get_json() == {'ok': False, 'error': 'Permiso denegado'}


def test_role_header_is_case_insensitive(client):
    assert client.get('/api/kitchen', headers=headers(role='cocina')).status_code == 200


def test_custom_context_resolver(container):
    app = create_app(container, context_resolver=lambda req: None)
    with app.test_client() as c:
        assert c.get('/api/orders', headers=headers()).status_code == 401


def test_resolve_context_from_headers(app):
    with app.test_request_context(headers=headers(role='ADMIN', user=' u-9 ')):
        ctx = resolve_context_from_headers(request)
    assert ctx.business_id == 'negocio-1'
    assert ctx.user_id == 'u-9'
    assert ctx.role == 'Admin'


# ---------------------------------------------------------------------------
# Flujo de órdenes
# ---------------------------------------------------------------------------

def test_order_lifecycle(client, clock):
    response = _create(client, role='Cajero')
    assert response.status_code == 201
    order = response.get_json()['order']
    assert order['order_code'] == 'ORD-001'
    assert order['total'] == 250
    assert order['status'] == 'Pendiente'
    assert order['next_status'] == 'En proceso'

    listed = client.get('/api/orders', headers=headers(role='Cajero')).get_json()
    assert [o['id'] for o in listed['orders']] == [order['id']]
    assert listed['is_loading'] is False

    assert _advance(client, order['id']).get_json()['order']['status'] == 'En proceso'
    finished = _advance(client, order['id'], 'Terminada').get_json()['order']
    assert finished['next_status'] is None

    clock.advance(minutes=90)
    response = client.post(f"/api/orders/{order['id']}/complete",
                           json={'payment_method': 'efectivo'}, headers=headers(role='Cajero'))
    assert response.status_code == 200
    done = response.get_json()['order']
    assert done['status'] == 'Entregada'
    assert done['payment_method'] == 'Efectivo'
    assert done['duration_minutes'] == 90
    assert done['duration_label'] == '1h 30m'

    assert client.get('/api/orders', headers=headers()).get_json()['orders'] == []


@pytest.mark.parametrize('body', [
    {'customer_name': '', 'items': ITEMS},
    {'customer_name': 'Ana', 'items': []},
    {'customer_name': 'Ana'},
    {'customer_name': 5, 'items': ITEMS},
    {'customer_name': 'Ana', 'items': 5},
    {'customer_name': 'Ana', 'items': {'id': 'b1'}},
])
def test_create_order_validation_errors(client, body):
    response = client.post('/api/orders', json=body, headers=headers())
    assert response.status_code == 400
    assert response.get_json()['ok'] is False


def test_create_order_requires_json_object(client):
    response = client.post('/api/orders', data='nada', headers=headers())
    assert response.status_code == 400


def test_out_of_order_transition_is_rejected(client):
    order = _create(client).get_json()['order']
    response = _advance(client, order['id'], 'Terminada')
    assert response.status_code == 400

    response = client.post(f"/api/orders/{order['id']}/complete",
                           json={'payment_method': 'Efectivo'}, headers=headers())
    assert response.status_code == 400


def test_invalid_payment_method(client):
    order = _create(client).get_json()['order']
    _ready(client, order['id'])
    response = client.post(f"/api/orders/{order['id']}/complete",
                           json={'payment_method': 'Tarjeta'}, headers=headers())
    assert response.status_code == 400


def test_unknown_order_is_404(client):
    assert _advance(client, 999).status_code == 404
    assert _advance(client, 999, 'En proceso').status_code == 404
    response = client.post('/api/orders/999/complete', json={'payment_method': 'Efectivo'}, headers=headers())
    assert response.status_code == 404


def test_orders_are_isolated_by_business(client):
    order = _create(client).get_json()['order']

    other = client.get('/api/orders', headers=headers(business='negocio-2')).get_json()
    assert other['orders'] == []
    response = _advance(client, order['id'])
    assert response.status_code == 200
    response = client.post(f"/api/orders/{order['id']}/status", json={},
                           headers=headers(role='Cocina', business='negocio-2'))
    assert response.status_code == 404


def test_kitchen_columns(client):
    a = _create(client, 'Ana').get_json()['order']
    _create(client, 'Beto')
    _advance(client, a['id'])

    columns = client.get('/api/kitchen', headers=headers(role='Cocina')).get_json()['columns']
    assert [o['customer_name'] for o in columns['Pendiente']] == ['Beto']
    assert [o['customer_name'] for o in columns['En proceso']] == ['Ana']
    assert columns['Terminada'] == []


# ---------------------------------------------------------------------------
# Historial y ventas
# ---------------------------------------------------------------------------

def _deliver(client, name, method, clock, minutes=10):
    order = _create(client, name).get_json()['order']
    _ready(client, order['id'])
    clock.advance(minutes=minutes)
    client.post(f"/api/orders/{order['id']}/complete", json={'payment_method': method}, headers=headers())
    return order


def test_history_groups_by_day(client, clock):
    _deliver(client, 'Ana', 'Efectivo', clock)
    clock.advance(days=1)
    _deliver(client, 'Beto', 'Transferencia', clock)

    days = client.get('/api/history', headers=headers()).get_json()['days']
    assert [d['date'] for d in days] == ['2024-05-16', '2024-05-15']
    assert days[0]['orders'][0]['customer_name'] == 'Beto'
    assert days[0]['orders'][0]['duration_label'] == '10m'


def test_sales_report(client, clock):
    _deliver(client, 'Ana', 'Efectivo', clock, minutes=10)
    _deliver(client, 'Beto', 'Transferencia', clock, minutes=20)

    body = client.get('/api/sales', headers=headers()).get_json()
    assert body['filter'] == 'all'
    assert body['range'] is None
    sales = body['sales']
    assert sales['total_orders'] == 2
    assert sales['total_revenue'] == 500
    assert sales['cash_total'] == 250
    assert sales['transfer_total'] == 250
    assert sales['orders_today'] == 2
    assert sales['average_delivery_time'] == 15
    assert sales['average_delivery_time_label'] == '15m'
    assert sales['top_payment_method'] == 'Transferencia'


def test_sales_month_filter(client, clock):
    _deliver(client, 'Ana', 'Efectivo', clock)

    may = client.get('/api/sales?type=month&year=2024&month=4', headers=headers()).get_json()
    june = client.get('/api/sales?type=month&year=2024&month=5', headers=headers()).get_json()

    assert may['range'] == {'start': '2024-05-01', 'end': '2024-05-31'}
    assert may['sales']['total_orders'] == 1
    assert june['sales']['total_orders'] == 0
    assert june['sales']['orders_today'] == 1


def test_sales_range_filter(client, clock):
    _deliver(client, 'Ana', 'Efectivo', clock)
    body = client.get('/api/sales?type=range&start=2024-05-20&end=2024-05-10', headers=headers()).get_json()
    assert body['range'] == {'start': '2024-05-10', 'end': '2024-05-20'}
    assert body['sales']['total_orders'] == 1


@pytest.mark.parametrize('query', [
    'type=month&year=2024&month=12',
    'type=month&year=0&month=0',
    'type=month&year=10000&month=0',
    'type=month&year=2024',
    'type=range&start=ayer&end=2024-05-01',
    'type=trimestre',
])
def test_sales_bad_filter(client, query):
    response = client.get(f'/api/sales?{query}', headers=headers())
    assert response.status_code == 400
    assert 'Filtro inválido' in response.get_json()['error']


# ---------------------------------------------------------------------------
# Menú
# ---------------------------------------------------------------------------

def test_menu_crud(client):
    response = client.post('/api/menu', json={'name': 'Agua', 'price': 50, 'category': 'Bebidas'},
                           headers=headers())
    assert response.status_code == 201
    item = response.get_json()['item']
    assert item['id'].startswith('bebidas_')

    listed = client.get('/api/menu', headers=headers(role='Cajero')).get_json()
    assert [i['name'] for i in listed['items']] == ['Agua']
    assert listed['categories'] == ['Bebidas']

    response = client.put(f"/api/menu/{item['id']}", json={'price': 60}, headers=headers())
    assert response.get_json()['item']['price'] == 60

    response = client.delete(f"/api/menu/{item['id']}", headers=headers())
    assert response.status_code == 200
    assert client.delete(f"/api/menu/{item['id']}", headers=headers()).status_code == 404


def test_menu_changes_require_products_capability(client):
    response = client.post('/api/menu', json={'name': 'Agua', 'price': 50, 'category': 'Bebidas'},
                           headers=headers(role='Cajero'))
    assert response.status_code == 403


def test_menu_validation_error(client):
    response = client.post('/api/menu', json={'name': 'Agua', 'price': 0, 'category': 'Bebidas'},
                           headers=headers())
    assert response.status_code == 400
    assert 'precio' in response.get_json()['error']


# ---------------------------------------------------------------------------
# Comanda
# ---------------------------------------------------------------------------

def _menu_item(client, name, price, category='Burgers'):
    response = client.post('/api/menu', json={'name': name, 'price': price, 'category': category},
                           headers=headers())
    return response.get_json()['item']


def test_comanda_build_and_confirm(client):
    burger = _menu_item(client, 'Burger', 100)
    fries = _menu_item(client, 'Papas', 50, 'Extras')
    h = headers(role='Cajero')

    client.post('/api/comanda/agregar', json={'id': burger['id']}, headers=h)
    client.post('/api/comanda/agregar', json={'id': burger['id']}, headers=h)
    client.post('/api/comanda/agregar', json={'id': fries['id']}, headers=h)
    response = client.post('/api/comanda/quitar', json={'id': fries['id']}, headers=h)
    comanda = response.get_json()['comanda']
    assert comanda['total'] == 200
    assert comanda['total_items'] == 2
    assert comanda['items_count'] == 1

    client.post('/api/comanda/cliente', json={'customer_name': ' Ana '}, headers=h)
    response = client.post('/api/comanda/confirmar', json={}, headers=h)
    assert response.status_code == 201
    order = response.get_json()['order']
    assert order['customer_name'] == 'Ana'
    assert order['total'] == 200

    empty = client.get('/api/comanda', headers=h).get_json()['comanda']
    assert empty['items'] == []
    assert empty['customer_name'] == ''


def test_comanda_unknown_item_and_missing_item(client):
    h = headers(role='Cajero')
    assert client.post('/api/comanda/agregar', json={'id': 'nope'}, headers=h).status_code == 404
    assert client.post('/api/comanda/quitar', json={'id': 'nope'}, headers=h).status_code == 400


def test_comanda_confirm_keeps_cart_on_validation_error(client):
    burger = _menu_item(client, 'Burger', 100)
    h = headers(role='Cajero')
    client.post('/api/comanda/agregar', json={'id': burger['id']}, headers=h)

    response = client.post('/api/comanda/confirmar', json={}, headers=h)
    assert response.status_code == 400
    assert len(client.get('/api/comanda', headers=h).get_json()['comanda']['items']) == 1

    client.post('/api/comanda/limpiar', headers=h)
    assert client.get('/api/comanda', headers=h).get_json()['comanda']['items'] == []
