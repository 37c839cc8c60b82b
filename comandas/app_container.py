# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (se pueden reemplazar el reloj y la carpeta de datos)
#   - Migración gradual (cambiar repos sin tocar servicios)
#
# MIGRACIÓN AL ALMACÉN REMOTO:
# 1. Crear RemoteOrderRepository (implementa IOrderRepository), etc.
# 2. Instanciarlos en las propiedades de repositorios de este archivo
# 3. Alimentar el ChangeFeed desde la suscripción en tiempo real
# 4. Los servicios NO requieren cambios
# ==============================================================================

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from comandas.config import Settings, load_settings
from comandas.models.entities import BusinessContext

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia (JSON)
# ═══════════════════════════════════════════════════════════════════════════════
from comandas.repositories import (
    AuditRepository,
    ChangeFeed,
    MenuRepository,
    OrderRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from comandas.services import (
    AuditService,
    CartService,
    MenuService,
    OrderService,
    StatsService,
    system_clock,
)


logger = logging.getLogger(__name__)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio. Los OrderService son uno por negocio:
    cada uno mantiene en memoria las órdenes de su negocio y se suscribe
    al canal de cambios la primera vez que se pide.

    Uso:
        container = AppContainer(settings=load_settings())
        orders = container.order_service(ctx)
        stats = container.stats_service.calculate(orders.delivered_orders)
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, settings: Optional[Settings] = None, clock: Optional[Callable[[], datetime]] = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Callable[[], datetime]] = None):
        """
        Inicializa el contenedor.

        Args:
            settings: Configuración (default: variables de entorno)
            clock: Reloj compartido por los servicios (default: hora local)
        """
        if self._initialized:
            return

        self.settings = settings or load_settings()
        self.clock = clock or system_clock

        # Repositorios (lazy loading)
        self._change_feed: Optional[ChangeFeed] = None
        self._order_repo: Optional[OrderRepository] = None
        self._menu_repo: Optional[MenuRepository] = None
        self._audit_repo: Optional[AuditRepository] = None

        # Servicios (lazy loading)
        self._audit_service: Optional[AuditService] = None
        self._stats_service: Optional[StatsService] = None
        self._menu_service: Optional[MenuService] = None
        self._cart_service: Optional[CartService] = None
        self._order_services: Dict[str, OrderService] = {}
        self._order_services_lock = threading.Lock()

        self._initialized = True

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def change_feed(self) -> ChangeFeed:
        """Canal de cambios compartido por todos los repositorios."""
        if self._change_feed is None:
            self._change_feed = ChangeFeed()
        return self._change_feed

    @property
    def order_repo(self) -> OrderRepository:
        """Repositorio de órdenes (singleton)."""
        if self._order_repo is None:
            self._order_repo = OrderRepository(self.settings.data_dir, self.change_feed)
        return self._order_repo

    @property
    def menu_repo(self) -> MenuRepository:
        """Repositorio del menú (singleton)."""
        if self._menu_repo is None:
            self._menu_repo = MenuRepository(self.settings.data_dir, self.change_feed)
        return self._menu_repo

    @property
    def audit_repo(self) -> AuditRepository:
        """Repositorio de auditoría (singleton)."""
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self.settings.data_dir)
        return self._audit_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def stats_service(self) -> StatsService:
        """Servicio de estadísticas (singleton)."""
        if self._stats_service is None:
            self._stats_service = StatsService(self.clock)
        return self._stats_service

    @property
    def menu_service(self) -> MenuService:
        """Servicio del menú (singleton)."""
        if self._menu_service is None:
            self._menu_service = MenuService(self.menu_repo, self.audit_service)
        return self._menu_service

    @property
    def cart_service(self) -> CartService:
        """Servicio de comanda (singleton)."""
        if self._cart_service is None:
            self._cart_service = CartService(self.menu_service)
        return self._cart_service

    def order_service(self, ctx: BusinessContext) -> OrderService:
        """
        Administrador de órdenes del negocio de `ctx` (uno por negocio).

        La primera vez se crea, se suscribe al canal de cambios
        y hace la carga inicial.
        """
        with self._order_services_lock:
            service = self._order_services.get(ctx.business_id)
            if service is None:
                service = OrderService(
                    BusinessContext(ctx.business_id),
                    self.order_repo,
                    change_feed=self.change_feed,
                    audit_service=self.audit_service,
                    clock=self.clock,
                    enforce_transitions=self.settings.enforce_transitions,
                )
                self._order_services[ctx.business_id] = service
                logger.info("[ÓRDENES] Servicio iniciado para el negocio %s", ctx.business_id)
                service.start()
        return service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        for service in self._order_services.values():
            service.close()
        self._order_services = {}

        self._change_feed = None
        self._order_repo = None
        self._menu_repo = None
        self._audit_repo = None

        self._audit_service = None
        self._stats_service = None
        self._menu_service = None
        self._cart_service = None

    @classmethod
    def get_instance(cls, settings: Optional[Settings] = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            settings: Configuración (solo se usa en primera llamada)
        """
        if cls._instance is None:
            return cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


# Función helper para obtener el contenedor global
def get_container(settings: Optional[Settings] = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        settings: Configuración (solo se usa en primera llamada)
    """
    return AppContainer.get_instance(settings)
