# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from comandas.exceptions import StoreError
from comandas.repositories.change_feed import ChangeEvent, ChangeFeed


logger = logging.getLogger(__name__)


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de archivos JSON con un lock de proceso
    y publica cada escritura en el canal de cambios (si hay uno).

    Al migrar al almacén remoto:
    - Los métodos _read_raw/_write_raw se convierten en consultas
    - El canal de cambios lo alimenta la suscripción en tiempo real
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    # Nombre de la tabla para los eventos de cambio
    table = ''

    def __init__(self, file_path: str, change_feed: Optional[ChangeFeed] = None):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
            change_feed: Canal donde se publican inserts/updates/deletes
        """
        self.file_path = file_path
        self.change_feed = change_feed
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        if not os.path.exists(self.file_path):
            directory = os.path.dirname(self.file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.
        Debe ser implementado por cada repositorio concreto.
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Raises:
            StoreError: Si el archivo está corrupto o no se puede leer
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except (json.JSONDecodeError, OSError) as e:
                logger.error("[ALMACÉN] No se pudo leer %s: %s", self.file_path, e)
                raise StoreError(f"No se pudo leer {os.path.basename(self.file_path)}") from e

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Raises:
            StoreError: Si hay error de escritura
        """
        with self._file_lock:
            # Escribir a archivo temporal primero para atomicidad
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except (OSError, TypeError, ValueError) as e:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                logger.error("[ALMACÉN] No se pudo escribir %s: %s", self.file_path, e)
                raise StoreError(f"No se pudo guardar {os.path.basename(self.file_path)}") from e

    def _notify(self, event_type: str, record: Dict[str, Any]) -> None:
        """Publica un evento de cambio (después de persistir)."""
        if self.change_feed is None:
            return
        self.change_feed.publish(ChangeEvent(
            table=self.table,
            type=event_type,
            record_id=record.get('id'),
            business_id=record.get('business_id'),
        ))


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista.

    Ejemplo: orders.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        """Retorna lista vacía."""
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """Obtiene todos los registros."""
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """Guarda todos los registros (reemplazo completo)."""
        self._write_raw(data)

    def append(self, record: Dict[str, Any]) -> None:
        """
        Agrega un registro al final y publica INSERT.

        Args:
            record: Datos del nuevo registro
        """
        with self._file_lock:
            data = self.get_all()
            data.append(record)
            self._write_raw(data)
        self._notify(ChangeEvent.INSERT, record)

    def find_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """
        Busca un registro por un campo específico.

        Returns:
            Primer registro que coincide o None
        """
        for record in self.get_all():
            if record.get(field) == value:
                return record
        return None

    def find_all_by(self, field: str, value: Any) -> List[Dict[str, Any]]:
        """Busca todos los registros que coinciden con un campo."""
        return [r for r in self.get_all() if r.get(field) == value]

    def update_where(self, field: str, value: Any, updates: Dict[str, Any]) -> bool:
        """
        Actualiza registros que coinciden con un campo y publica UPDATE.

        Returns:
            True si se actualizó al menos un registro
        """
        updated = []
        with self._file_lock:
            data = self.get_all()
            for record in data:
                if record.get(field) == value:
                    record.update(updates)
                    updated.append(record)
            if updated:
                self._write_raw(data)
        for record in updated:
            self._notify(ChangeEvent.UPDATE, record)
        return bool(updated)

    def delete_where(self, field: str, value: Any) -> List[Dict[str, Any]]:
        """
        Elimina registros que coinciden con un campo y publica DELETE.

        Returns:
            Registros eliminados
        """
        with self._file_lock:
            data = self.get_all()
            removed = [r for r in data if r.get(field) == value]
            if removed:
                self._write_raw([r for r in data if r.get(field) != value])
        for record in removed:
            self._notify(ChangeEvent.DELETE, record)
        return removed
