# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista: [{log1}, {log2}, ...]
# ==============================================================================

import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from comandas.repositories.base import ListRepository


class AuditRepository(ListRepository):
    """
    Repositorio para gestión del log de auditoría.

    Formato de datos en audit.json:
    [
        {
            "type": "ORDEN",
            "business_id": "negocio-1",
            "user": "cajero-1",
            "message": "Orden ORD-001 creada para Ana ($250)",
            "timestamp": "2024-01-01 10:00:00",
            "related_id": "ORD-001",
            "details": {...}
        }
    ]

    No publica en el canal de cambios: la auditoría no es una tabla
    que los servicios observen.
    """

    table = 'audit'

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'audit.json')
        super().__init__(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los logs de auditoría.

        Returns:
            Lista de logs (más recientes primero)
        """
        logs = self.get_all()
        return sorted(logs, key=lambda x: x.get('timestamp', ''), reverse=True)

    def save(self, logs: List[Dict[str, Any]]) -> None:
        """Guarda todos los logs respetando MAX_LOGS."""
        if len(logs) > self.MAX_LOGS:
            logs = logs[:self.MAX_LOGS]
        self.save_all(logs)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None,
        business_id: str = ''
    ) -> None:
        """
        Registra un nuevo evento de auditoría.

        Args:
            log_type: Tipo de evento (ORDEN, PAGO, MENU)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (código de orden, id de producto)
            details: Detalles adicionales
            business_id: Negocio donde ocurrió el evento
        """
        log_entry = {
            'type': log_type,
            'business_id': business_id,
            'user': user or 'sistema',
            'message': message,
            'timestamp': datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            'related_id': str(related_id) if related_id is not None else '',
            'details': details or {}
        }

        with self._file_lock:
            logs = self.get_all()  # Sin ordenar para insertar eficiente
            logs.insert(0, log_entry)  # Más reciente primero
            self.save(logs)

    def get_logs_by_business(self, business_id: str, log_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Logs de un negocio, opcionalmente filtrados por tipo.

        Args:
            business_id: Negocio
            log_type: Tipo a filtrar (ORDEN, PAGO, etc.)
        """
        return [
            log for log in self.load()
            if log.get('business_id') == business_id
            and (log_type is None or log.get('type') == log_type)
        ]

    def get_recent_logs(self, business_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Los `limit` logs más recientes del negocio."""
        return self.get_logs_by_business(business_id)[:limit]
