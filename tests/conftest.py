from datetime import datetime, timedelta, timezone

import pytest

from comandas.app_container import AppContainer
from comandas.config import Settings
from comandas.main import create_app
from comandas.models.entities import BusinessContext
from comandas.repositories import AuditRepository, ChangeFeed, MenuRepository, OrderRepository
from comandas.services import AuditService, MenuService, OrderService, StatsService


# Hora fija de Santo Domingo (UTC-4, sin horario de verano)
TZ = timezone(timedelta(hours=-4))


class FixedClock:
    """Reloj controlable: retorna siempre `now` hasta que se avance."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    # miércoles 15 de mayo de 2024, 12:00
    return FixedClock(datetime(2024, 5, 15, 12, 0, tzinfo=TZ))


@pytest.fixture
def ctx():
    return BusinessContext('negocio-1', 'cajero-1', 'Cajero')


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def order_repo(tmp_path, feed):
    return OrderRepository(str(tmp_path), feed)


@pytest.fixture
def menu_repo(tmp_path, feed):
    return MenuRepository(str(tmp_path), feed)


@pytest.fixture
def audit_repo(tmp_path):
    return AuditRepository(str(tmp_path))


@pytest.fixture
def audit_service(audit_repo):
    return AuditService(audit_repo)


@pytest.fixture
def order_service(ctx, order_repo, feed, audit_service, clock):
    service = OrderService(ctx, order_repo, feed, audit_service, clock=clock)
    service.start()
    yield service
    service.close()


@pytest.fixture
def stats_service(clock):
    return StatsService(clock)


@pytest.fixture
def menu_service(menu_repo, audit_service):
    return MenuService(menu_repo, audit_service)


@pytest.fixture
def container(tmp_path, clock):
    AppContainer.reset_instance()
    settings = Settings(data_dir=str(tmp_path / 'data'), log_level='WARNING')
    c = AppContainer(settings=settings, clock=clock)
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def app(container):
    application = create_app(container)
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


def headers(role='Admin', business='negocio-1', user='usuario-1'):
    """Headers que la capa de autenticación agrega a cada request."""
    return {'X-Business-Id': business, 'X-User-Id': user, 'X-User-Role': role}


ITEMS = [
    {'id': 'b1', 'name': 'Burger Clásica', 'quantity': 2, 'price': 100},
    {'id': 'p1', 'name': 'Papas Simples', 'quantity': 1, 'price': 50},
]
