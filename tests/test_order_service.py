import pytest

from comandas.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    OrderValidationError,
    StoreError,
)
from comandas.models.entities import BusinessContext, OrderItem
from comandas.services.order_service import OrderService, elapsed_minutes, next_status

from conftest import ITEMS


class BrokenRepo:
    """Almacén que rechaza todo."""

    def insert(self, order_data):
        raise StoreError("sin conexión")

    def update(self, order_id, fields):
        raise StoreError("sin conexión")

    def query(self, business_id, status_filter=None, order_by=None):
        raise StoreError("sin conexión")

    def get(self, order_id):
        raise StoreError("sin conexión")


def _ready(service, order_id):
    service.advance_status(order_id, 'En proceso')
    service.advance_status(order_id, 'Terminada')


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------

def test_create_computes_total_and_starts_pending(order_service, clock):
    order = order_service.create('Ana', ITEMS)

    assert order.total == 250
    assert order.status == 'Pendiente'
    assert order.payment_method is None
    assert order.delivered_at is None
    assert order.order_code == 'ORD-001'
    assert order.created_at == clock.now.isoformat()


def test_create_reaches_active_collection_through_change_feed(order_service):
    order = order_service.create('Ana', ITEMS)

    assert [o.id for o in order_service.active_orders] == [order.id]
    assert order_service.delivered_orders == []


def test_create_does_not_touch_local_state_without_feed(ctx, order_repo, clock):
    service = OrderService(ctx, order_repo, change_feed=None, clock=clock)
    service.create('Ana', ITEMS)
    assert service.active_orders == []

    assert service.reload() is True
    assert len(service.active_orders) == 1


def test_create_accepts_order_items(order_service):
    order = order_service.create('Luis', [OrderItem('d1', 'Coca Cola', 3, 80)])
    assert order.total == 240
    assert order.items[0].name == 'Coca Cola'


@pytest.mark.parametrize('name, items', [
    ('', ITEMS),
    ('   ', ITEMS),
    ('Ana', []),
    (5, ITEMS),
    ('Ana', 5),
    ('Ana', {'id': 'b1', 'name': 'Burger', 'quantity': 1, 'price': 100}),
    ('Ana', [{'id': 'b1', 'name': 'Burger', 'quantity': 0, 'price': 100}]),
    ('Ana', [{'id': 'b1', 'name': 'Burger', 'quantity': 1, 'price': -5}]),
    ('Ana', [{'id': 'b1', 'name': 'Burger', 'quantity': 1, 'price': 9.5}]),
])
def test_create_rejects_invalid_input_before_store(order_service, order_repo, name, items):
    with pytest.raises(OrderValidationError):
        order_service.create(name, items)
    assert order_repo.get_all() == []


def test_order_codes_are_sequential_per_business(order_repo, feed, clock):
    a = OrderService(BusinessContext('negocio-a'), order_repo, feed, clock=clock)
    b = OrderService(BusinessContext('negocio-b'), order_repo, feed, clock=clock)

    assert a.create('Ana', ITEMS).order_code == 'ORD-001'
    assert a.create('Beto', ITEMS).order_code == 'ORD-002'
    assert b.create('Carla', ITEMS).order_code == 'ORD-001'


def test_create_propagates_store_error(ctx, clock):
    service = OrderService(ctx, BrokenRepo(), clock=clock)
    with pytest.raises(StoreError):
        service.create('Ana', ITEMS)


def test_audit_failure_does_not_undo_saved_order(order_service, order_repo, audit_repo, caplog):
    with open(audit_repo.file_path, 'w', encoding='utf-8') as f:
        f.write('{')

    order = order_service.create('Ana', ITEMS)
    _ready(order_service, order.id)
    order_service.complete_order(order.id, 'Efectivo')

    assert order.order_code == 'ORD-001'
    assert order_repo.get(order.id).status == 'Entregada'
    assert order_service.delivered_orders[0].id == order.id
    assert '[AUDITORÍA]' in caplog.text


# ---------------------------------------------------------------------------
# advance_status / complete_order
# ---------------------------------------------------------------------------

def test_advance_status_through_kitchen_flow(order_service):
    order = order_service.create('Ana', ITEMS)

    order_service.advance_status(order.id, 'En proceso')
    order_service.advance_status(order.id, 'Terminada')

    current = order_service.get_order(order.id)
    assert current.status == 'Terminada'
    assert current.payment_method is None
    assert current.delivered_at is None


def test_complete_order_moves_to_delivered(order_service, clock):
    order = order_service.create('Ana', ITEMS)
    _ready(order_service, order.id)
    clock.advance(minutes=25)

    order_service.complete_order(order.id, 'Efectivo')

    assert order_service.active_orders == []
    delivered = order_service.delivered_orders
    assert len(delivered) == 1
    assert delivered[0].status == 'Entregada'
    assert delivered[0].payment_method == 'Efectivo'
    assert delivered[0].delivered_at == clock.now.isoformat()
    assert delivered[0].duration_minutes == 25


def test_complete_order_normalizes_payment_method_case(order_service):
    order = order_service.create('Ana', ITEMS)
    _ready(order_service, order.id)

    order_service.complete_order(order.id, 'transferencia')

    assert order_service.delivered_orders[0].payment_method == 'Transferencia'


def test_complete_order_rejects_unknown_payment_method(order_service):
    order = order_service.create('Ana', ITEMS)
    _ready(order_service, order.id)

    with pytest.raises(OrderValidationError):
        order_service.complete_order(order.id, 'Tarjeta')
    assert order_service.get_order(order.id).status == 'Terminada'


@pytest.mark.parametrize('target', ['Terminada', 'Pendiente', 'Entregada', 'Cancelada'])
def test_enforced_transitions_reject_out_of_order_status(order_service, target):
    order = order_service.create('Ana', ITEMS)

    with pytest.raises(InvalidTransitionError):
        order_service.advance_status(order.id, target)
    assert order_service.get_order(order.id).status == 'Pendiente'


def test_complete_requires_finished_order_when_enforced(order_service):
    order = order_service.create('Ana', ITEMS)
    with pytest.raises(InvalidTransitionError):
        order_service.complete_order(order.id, 'Efectivo')


def test_delivered_order_never_changes_status(order_service):
    order = order_service.create('Ana', ITEMS)
    _ready(order_service, order.id)
    order_service.complete_order(order.id, 'Efectivo')

    for status in ('Pendiente', 'En proceso', 'Terminada'):
        with pytest.raises(InvalidTransitionError):
            order_service.advance_status(order.id, status)
    with pytest.raises(InvalidTransitionError):
        order_service.complete_order(order.id, 'Transferencia')


def test_without_enforcement_caller_is_trusted(ctx, order_repo, feed, clock):
    service = OrderService(ctx, order_repo, feed, clock=clock, enforce_transitions=False)
    service.start()
    order = service.create('Ana', ITEMS)

    service.advance_status(order.id, 'Terminada')
    assert service.get_order(order.id).status == 'Terminada'

    other = service.create('Beto', ITEMS)
    service.complete_order(other.id, 'Efectivo')
    delivered = service.get_order(other.id)
    assert delivered.status == 'Entregada'
    assert delivered.payment_method == 'Efectivo'
    assert delivered.delivered_at is not None

    with pytest.raises(InvalidTransitionError):
        service.advance_status(order.id, 'Cancelada')
    # Entregada solo por complete_order
    with pytest.raises(InvalidTransitionError):
        service.advance_status(order.id, 'Entregada')


def test_unknown_or_foreign_order_is_not_found(order_service, order_repo, feed, clock):
    other = OrderService(BusinessContext('negocio-2'), order_repo, feed, clock=clock)
    foreign = other.create('Zoe', ITEMS)

    with pytest.raises(OrderNotFoundError):
        order_service.advance_status(999, 'En proceso')
    with pytest.raises(OrderNotFoundError):
        order_service.advance_status(foreign.id, 'En proceso')


# ---------------------------------------------------------------------------
# reload
# ---------------------------------------------------------------------------

def test_reload_partitions_and_orders_collections(order_service, clock):
    first = order_service.create('Ana', ITEMS)
    clock.advance(minutes=5)
    second = order_service.create('Beto', ITEMS)
    clock.advance(minutes=5)
    third = order_service.create('Carla', ITEMS)

    for order in (first, third):
        _ready(order_service, order.id)
    clock.advance(minutes=10)
    order_service.complete_order(first.id, 'Efectivo')
    clock.advance(minutes=10)
    order_service.complete_order(third.id, 'Transferencia')

    active_ids = [o.id for o in order_service.active_orders]
    delivered_ids = [o.id for o in order_service.delivered_orders]
    assert active_ids == [second.id]
    # delivered_at descendente
    assert delivered_ids == [third.id, first.id]
    assert not set(active_ids) & set(delivered_ids)
    assert all(o.status == 'Entregada' for o in order_service.delivered_orders)


def test_active_orders_sorted_by_creation_ascending(order_service, clock):
    codes = []
    for name in ('Ana', 'Beto', 'Carla'):
        codes.append(order_service.create(name, ITEMS).order_code)
        clock.advance(minutes=1)
    assert [o.order_code for o in order_service.active_orders] == codes


def test_reload_failure_keeps_previous_collections(ctx, order_repo, feed, clock):
    service = OrderService(ctx, order_repo, feed, clock=clock)
    service.start()
    service.create('Ana', ITEMS)
    before = service.active_orders

    service.order_repo = BrokenRepo()
    assert service.reload() is False
    assert service.is_loading is False
    assert [o.id for o in service.active_orders] == [o.id for o in before]


def test_reload_ignores_other_businesses(order_service, order_repo, feed, clock):
    other = OrderService(BusinessContext('negocio-2'), order_repo, feed, clock=clock)
    other.create('Zoe', ITEMS)
    order_service.create('Ana', ITEMS)

    assert [o.customer_name for o in order_service.active_orders] == ['Ana']


def test_close_stops_listening(order_service, feed):
    order_service.close()
    order_service.create('Ana', ITEMS)
    assert order_service.active_orders == []
    assert feed.subscriber_count == 0


# ---------------------------------------------------------------------------
# vistas
# ---------------------------------------------------------------------------

def test_orders_by_status_groups_kitchen_columns(order_service):
    a = order_service.create('Ana', ITEMS)
    b = order_service.create('Beto', ITEMS)
    order_service.create('Carla', ITEMS)
    order_service.advance_status(a.id, 'En proceso')
    _ready(order_service, b.id)

    columns = order_service.orders_by_status()
    assert list(columns) == ['Pendiente', 'En proceso', 'Terminada']
    assert [o.customer_name for o in columns['Pendiente']] == ['Carla']
    assert [o.customer_name for o in columns['En proceso']] == ['Ana']
    assert [o.customer_name for o in columns['Terminada']] == ['Beto']


def test_history_by_day_most_recent_first(order_service, clock):
    first = order_service.create('Ana', ITEMS)
    _ready(order_service, first.id)
    order_service.complete_order(first.id, 'Efectivo')

    clock.advance(days=1)
    second = order_service.create('Beto', ITEMS)
    third = order_service.create('Carla', [{'id': 'd1', 'name': 'Agua', 'quantity': 1, 'price': 50}])
    for order in (second, third):
        _ready(order_service, order.id)
        order_service.complete_order(order.id, 'Transferencia')

    days = order_service.history_by_day()
    assert [d['date'] for d in days] == ['2024-05-16', '2024-05-15']
    assert days[0]['total'] == 300
    assert len(days[0]['orders']) == 2
    assert days[1]['total'] == 250


def test_status_changes_are_audited(order_service, audit_service, ctx):
    order = order_service.create('Ana', ITEMS)
    _ready(order_service, order.id)
    order_service.complete_order(order.id, 'Efectivo', user_id='admin-1')

    logs = audit_service.get_logs(ctx)
    types = [log['type'] for log in logs]
    assert types.count('PAGO') == 1
    assert types.count('ORDEN') == 4
    assert logs[0]['user'] == 'admin-1'
    assert logs[-1]['user'] == 'cajero-1'


def test_next_status_chain():
    assert next_status('Pendiente') == 'En proceso'
    assert next_status('En proceso') == 'Terminada'
    assert next_status('Terminada') is None
    assert next_status('Entregada') is None


def test_elapsed_minutes_rounds_and_never_negative(clock):
    created = clock.now.isoformat()
    clock.advance(minutes=10, seconds=30)
    assert elapsed_minutes(created, clock.now) == 11
    assert elapsed_minutes(clock.now.isoformat(), clock.now.replace(minute=0)) == 0
    assert elapsed_minutes('', clock.now) is None
