# ==============================================================================
# CONFIGURACIÓN - Variables de entorno
# ==============================================================================
# Todas las opciones se leen del entorno con valores seguros para desarrollo:
#
#   COMANDAS_DATA_DIR            Carpeta de los JSON (default: ./data)
#   COMANDAS_SECRET_KEY          Clave de sesión de Flask
#   COMANDAS_PRODUCTION_MODE     1/true = producción
#   COMANDAS_ENFORCE_TRANSITIONS 0/false = confiar en el flujo de la UI
#   COMANDAS_LOG_LEVEL           DEBUG, INFO, WARNING...
#
# Comando: export COMANDAS_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
# ==============================================================================

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


logger = logging.getLogger(__name__)

_DEFAULT_SECRET = "comandas_dev_secret_key_change_in_production"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'si', 'sí', 'on')


@dataclass
class Settings:
    """Configuración de la aplicación."""
    data_dir: str
    secret_key: str = _DEFAULT_SECRET
    production_mode: bool = False
    enforce_transitions: bool = True
    log_level: str = 'INFO'

    @property
    def using_default_secret(self) -> bool:
        return self.secret_key == _DEFAULT_SECRET


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Construye Settings desde variables de entorno.

    Args:
        env: Entorno a leer (default: os.environ)
    """
    env = os.environ if env is None else env

    data_dir = env.get('COMANDAS_DATA_DIR') or os.path.join(os.getcwd(), 'data')
    settings = Settings(
        data_dir=os.path.abspath(data_dir),
        secret_key=env.get('COMANDAS_SECRET_KEY') or _DEFAULT_SECRET,
        production_mode=_env_bool(env, 'COMANDAS_PRODUCTION_MODE', False),
        enforce_transitions=_env_bool(env, 'COMANDAS_ENFORCE_TRANSITIONS', True),
        log_level=(env.get('COMANDAS_LOG_LEVEL') or 'INFO').upper(),
    )

    if settings.production_mode and settings.using_default_secret:
        logger.warning("[ADVERTENCIA] PRODUCTION_MODE activo sin COMANDAS_SECRET_KEY definida")
        logger.warning("[ADVERTENCIA] Define la variable de entorno para mayor seguridad")

    return settings


def configure_logging(level: str = 'INFO') -> None:
    """Formato y nivel del logger raíz (solo la primera vez)."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
